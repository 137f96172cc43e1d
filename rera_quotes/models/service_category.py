"""ServiceCategory model - groups services and carries the complexity factor."""
from sqlalchemy import Column, String, Numeric, Boolean, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK


class ServiceCategory(Base):
    """Service category with its delivery-effort (complexity) factor."""

    __tablename__ = 'service_category'
    __table_args__ = (
        CheckConstraint('complexity_factor > 0', name='ck_service_category_complexity_positive'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    complexity_factor = Column(Numeric(6, 3), nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    services = relationship('Service', back_populates='category')

    def __repr__(self):
        return f"<ServiceCategory(id={self.id}, name='{self.name}', complexity={self.complexity_factor})>"
