"""Service model - catalog of consultancy services with their base price."""
from sqlalchemy import Column, BigInteger, String, Numeric, Boolean, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK


class Service(Base):
    """Service offered in quotations."""

    __tablename__ = 'service'
    __table_args__ = (
        CheckConstraint('base_price >= 0', name='ck_service_base_price_non_negative'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    category_id = Column(BigInteger, ForeignKey('service_category.id'), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(14, 2), nullable=False, default=0)
    is_mandatory = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    category = relationship('ServiceCategory', back_populates='services')

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', base_price={self.base_price})>"
