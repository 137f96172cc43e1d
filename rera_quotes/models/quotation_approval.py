"""QuotationApproval model - immutable record of each approval decision."""
import enum
from sqlalchemy import Column, BigInteger, Numeric, Text, DateTime, ForeignKey, Enum as SQLEnum, event
from sqlalchemy.orm import relationship
from rera_quotes.database import Base, BigIntPK, enum_values


class ApprovalLevel(enum.Enum):
    """Minimum authority required to approve a quotation, ordered by rank."""
    AUTO_APPROVED = 'auto_approved'
    MANAGER = 'manager'
    SENIOR_MANAGER = 'senior_manager'
    DIRECTOR = 'director'

    @property
    def rank(self):
        return _LEVEL_RANKS[self]

    @property
    def label(self):
        return _LEVEL_LABELS[self]


_LEVEL_RANKS = {
    ApprovalLevel.AUTO_APPROVED: 0,
    ApprovalLevel.MANAGER: 1,
    ApprovalLevel.SENIOR_MANAGER: 2,
    ApprovalLevel.DIRECTOR: 3,
}

_LEVEL_LABELS = {
    ApprovalLevel.AUTO_APPROVED: 'Auto Approved',
    ApprovalLevel.MANAGER: 'Manager Approval Required',
    ApprovalLevel.SENIOR_MANAGER: 'Senior Manager Approval Required',
    ApprovalLevel.DIRECTOR: 'Director Approval Required',
}


class ApprovalDecision(enum.Enum):
    """Outcome of a human approval action."""
    APPROVED = 'approved'
    REJECTED = 'rejected'


class QuotationApproval(Base):
    """
    Approval record (audit trail).

    Amounts and the required level are a snapshot taken at decision time.
    Rows are insert-only: any attempt to update one is refused.
    """

    __tablename__ = 'quotation_approval'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    quotation_id = Column(BigInteger, ForeignKey('quotation.id'), nullable=False, index=True)
    approver_user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    approval_status = Column(
        SQLEnum(ApprovalDecision, name='approval_decision', native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    approval_date = Column(DateTime(timezone=True), nullable=False)
    comments = Column(Text, nullable=True)
    approval_level_required = Column(
        SQLEnum(ApprovalLevel, name='approval_level', native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    original_amount = Column(Numeric(14, 2), nullable=False)
    discounted_amount = Column(Numeric(14, 2), nullable=False)
    discount_percentage = Column(Numeric(20, 6), nullable=False)

    # Relationships
    quotation = relationship('Quotation', back_populates='approvals')
    approver = relationship('AppUser', foreign_keys=[approver_user_id])

    def __repr__(self):
        return (
            f"<QuotationApproval(quotation_id={self.quotation_id}, "
            f"status='{self.approval_status.value}', level='{self.approval_level_required.value}')>"
        )


@event.listens_for(QuotationApproval, 'before_update')
def _refuse_approval_update(mapper, connection, target):
    from rera_quotes.exceptions import BusinessLogicError
    raise BusinessLogicError('Approval records cannot be modified.')
