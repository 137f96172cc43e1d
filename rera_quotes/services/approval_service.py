"""
Approval workflow service.

Applies approve/reject decisions to pending quotations. The status change
is a conditional UPDATE (only while status is still pending_approval), so
when two approvers decide at the same time exactly one wins and the other
gets an ApprovalStateError.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from rera_quotes.exceptions import BusinessLogicError, NotFoundError, ApprovalStateError
from rera_quotes.models import AppUser, Quotation, QuotationStatus, QuotationApproval, ApprovalDecision
from rera_quotes.services.approval_gate import approvable_levels, ensure_can_decide
from rera_quotes.services.notification_service import send_approval_notification

logger = logging.getLogger(__name__)


def parse_decision(action) -> ApprovalDecision:
    """Map 'approved'/'rejected' (or an ApprovalDecision) to the enum."""
    if isinstance(action, ApprovalDecision):
        return action
    try:
        return ApprovalDecision(str(action or '').strip().lower())
    except ValueError:
        raise BusinessLogicError(f"Invalid action '{action}'. Use 'approved' or 'rejected'.")


def decide_quotation(
    session: Session,
    quotation_id: int,
    approver: AppUser,
    action,
    comments: Optional[str] = None,
) -> QuotationApproval:
    """
    Approve or reject a pending quotation.

    The required level is the one stored with the quotation's pricing
    (derived from the exact discount when it was last priced), so the
    approver queue, this check and the audit record always agree. On
    success an immutable QuotationApproval is written and the creator is
    notified; a failed notification is only logged.

    Raises:
        NotFoundError: unknown quotation
        ApprovalStateError: quotation is not (or no longer) pending approval
        ApprovalPermissionError: approver's role is below the required level
        BusinessLogicError: invalid action, or rejection without comments
    """
    decision = parse_decision(action)
    comments = (comments or '').strip() or None
    if decision == ApprovalDecision.REJECTED and not comments:
        raise BusinessLogicError('Comments are required when rejecting a quotation.')

    try:
        quotation = session.query(Quotation).filter(Quotation.id == quotation_id).first()
        if not quotation:
            raise NotFoundError(f'Quotation {quotation_id} not found.')

        quotation_number = quotation.quotation_number
        if quotation.status != QuotationStatus.PENDING_APPROVAL:
            raise ApprovalStateError(quotation_number, quotation.status)

        required_level = ensure_can_decide(
            approver.role, quotation.approval_level, quotation.total_discount_percentage
        )

        now = datetime.now(timezone.utc)
        is_approved = decision == ApprovalDecision.APPROVED
        new_status = QuotationStatus.APPROVED if is_approved else QuotationStatus.REJECTED

        # Frozen snapshot for the audit trail
        record = QuotationApproval(
            quotation_id=quotation.id,
            approver_user_id=approver.id,
            approval_status=decision,
            approval_date=now,
            comments=comments,
            approval_level_required=required_level,
            original_amount=quotation.original_amount,
            discounted_amount=quotation.total_amount,
            discount_percentage=quotation.total_discount_percentage,
        )

        result = session.execute(
            update(Quotation)
            .where(
                Quotation.id == quotation.id,
                Quotation.status == QuotationStatus.PENDING_APPROVAL,
            )
            .values(
                status=new_status,
                approved_at=now if is_approved else None,
                approved_by=approver.id if is_approved else None,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            # Another decision committed between our read and our update
            session.rollback()
            actual_status = session.query(Quotation.status).filter(Quotation.id == quotation_id).scalar()
            logger.warning(
                f"[APPROVAL] Conflict on {quotation_number}: {approver.email} lost the race "
                f"(status now {getattr(actual_status, 'value', actual_status)})"
            )
            raise ApprovalStateError(quotation_number, actual_status)

        session.add(record)
        session.commit()
    except (BusinessLogicError, NotFoundError) as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    session.refresh(quotation)
    logger.info(
        f"[APPROVAL] {quotation_number} {decision.value} by {approver.email} "
        f"(required {required_level.value}, role {approver.role.value})"
    )

    send_approval_notification(quotation, decision.value, approver.display_name, comments)
    return record


def pending_for_approver(session: Session, approver: AppUser) -> List[Quotation]:
    """Pending quotations this approver is allowed to decide on, oldest first."""
    levels = approvable_levels(approver.role)
    if not levels:
        return []
    return (
        session.query(Quotation)
        .filter(
            Quotation.status == QuotationStatus.PENDING_APPROVAL,
            Quotation.approval_level.in_(levels),
        )
        .order_by(Quotation.created_at.asc(), Quotation.id.asc())
        .all()
    )
