"""Quotation model - header and stored pricing totals of a quotation."""
import enum
from datetime import timedelta
from decimal import Decimal
from sqlalchemy import Column, BigInteger, Boolean, String, Numeric, Integer, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK, enum_values
from rera_quotes.models.quotation_approval import ApprovalLevel


class QuotationStatus(enum.Enum):
    """Quotation status enum."""
    DRAFT = 'draft'
    PENDING_APPROVAL = 'pending_approval'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class Quotation(Base):
    """
    Quotation.

    Totals are a flattened copy of the QuotationPricing aggregate computed
    when the quotation was last saved. The approval workflow always reads
    approval_level from here, never from a fresh calculation.
    """

    __tablename__ = 'quotation'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    quotation_number = Column(String(64), nullable=False, unique=True)
    created_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    status = Column(
        SQLEnum(QuotationStatus, name='quotation_status', native_enum=False, values_callable=enum_values),
        nullable=False,
        default=QuotationStatus.DRAFT,
        index=True,
    )

    # Selections
    developer_type_id = Column(BigInteger, ForeignKey('developer_type.id'), nullable=False)
    region_id = Column(BigInteger, ForeignKey('region.id'), nullable=True)
    plot_area_range_id = Column(BigInteger, ForeignKey('plot_area_range.id'), nullable=True)

    # Project header
    developer_name = Column(String(255), nullable=False)
    project_name = Column(String(255), nullable=True)
    project_location = Column(String(255), nullable=True)
    plot_area = Column(Numeric(12, 2), nullable=True)
    rera_number = Column(String(64), nullable=True)
    validity_days = Column(Integer, nullable=False, default=30)
    payment_schedule = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # Agent registration header
    is_agent_registration = Column(Boolean, nullable=False, default=False)
    agent_type = Column(String(32), nullable=True)
    mobile_number = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)

    # Pricing snapshot
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    total_discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    total_discount_percentage = Column(Numeric(20, 6), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    rounded_total = Column(Numeric(14, 2), nullable=False, default=0)
    approval_level = Column(
        SQLEnum(ApprovalLevel, name='approval_level', native_enum=False, values_callable=enum_values),
        nullable=False,
        default=ApprovalLevel.AUTO_APPROVED,
    )

    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    creator = relationship('AppUser', foreign_keys=[created_by])
    approver = relationship('AppUser', foreign_keys=[approved_by])
    developer_type = relationship('DeveloperType')
    region = relationship('Region')
    plot_area_range = relationship('PlotAreaRange')
    lines = relationship(
        'QuotationServiceLine',
        back_populates='quotation',
        cascade='all, delete-orphan',
        order_by='QuotationServiceLine.position',
    )
    approvals = relationship(
        'QuotationApproval',
        back_populates='quotation',
        order_by='QuotationApproval.approval_date',
    )

    def __repr__(self):
        return f"<Quotation(id={self.id}, number='{self.quotation_number}', status='{self.status.value}', total={self.total_amount})>"

    @property
    def original_amount(self):
        """Sum of calculated prices before any manual discount."""
        return Decimal(self.total_amount or 0) + Decimal(self.total_discount_amount or 0)

    @property
    def needs_approval(self):
        return self.approval_level != ApprovalLevel.AUTO_APPROVED

    @property
    def valid_until(self):
        if not self.created_at:
            return None
        return (self.created_at + timedelta(days=self.validity_days or 0)).date()

    @property
    def is_editable(self):
        """Only drafts and rejected quotations can be re-priced."""
        return self.status in (QuotationStatus.DRAFT, QuotationStatus.REJECTED)
