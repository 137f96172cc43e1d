"""QuotationServiceLine model for priced service lines."""
from sqlalchemy import Column, BigInteger, String, Numeric, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from rera_quotes.database import Base, BigIntPK


class QuotationServiceLine(Base):
    """
    Quotation service line.

    Stores a snapshot of the service and of the four multipliers used,
    so the breakdown stays reproducible after the catalog changes.
    """

    __tablename__ = 'quotation_service_line'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    quotation_id = Column(BigInteger, ForeignKey('quotation.id'), nullable=False, index=True)
    service_id = Column(BigInteger, ForeignKey('service.id'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    service_name_snapshot = Column(String(200), nullable=False)
    category_name_snapshot = Column(String(100), nullable=True)

    base_price = Column(Numeric(14, 2), nullable=False)
    original_price = Column(Numeric(14, 2), nullable=False)  # calculated, pre-discount
    final_price = Column(Numeric(14, 2), nullable=False)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount_percentage = Column(Numeric(20, 6), nullable=False, default=0)
    discount_reason = Column(Text, nullable=True)

    developer_type_multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    regional_multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    plot_area_multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    service_complexity_factor = Column(Numeric(6, 3), nullable=False, default=1)

    # Relationships
    quotation = relationship('Quotation', back_populates='lines')
    service = relationship('Service')

    def __repr__(self):
        return f"<QuotationServiceLine(id={self.id}, quotation_id={self.quotation_id}, service='{self.service_name_snapshot}', final={self.final_price})>"
