"""Region model - geographic classification carrying a multiplier."""
from sqlalchemy import Column, String, Numeric, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK


class Region(Base):
    """Region (district/city) with its regional multiplier."""

    __tablename__ = 'region'
    __table_args__ = (
        CheckConstraint('multiplier > 0', name='ck_region_multiplier_positive'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    state = Column(String(100), nullable=True)
    multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Region(id={self.id}, name='{self.name}', multiplier={self.multiplier})>"
