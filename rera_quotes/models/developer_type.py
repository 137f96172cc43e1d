"""DeveloperType model - classification of the quotation's subject (builder, agent...)."""
from sqlalchemy import Column, String, Numeric, Boolean, Text, DateTime, CheckConstraint
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK


class DeveloperType(Base):
    """Developer category carrying a base-rate multiplier."""

    __tablename__ = 'developer_type'
    __table_args__ = (
        CheckConstraint('multiplier > 0', name='ck_developer_type_multiplier_positive'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    # Agent registrations are priced at the base price, without multipliers or overrides
    is_agent_registration = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<DeveloperType(id={self.id}, name='{self.name}', multiplier={self.multiplier})>"
