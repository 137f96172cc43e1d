"""
Approval gate: maps a discount percentage to the authority level it needs
and checks whether a role clears that level.

Pure functions, no database access. The workflow that applies decisions
to stored quotations lives in approval_service.
"""
from decimal import Decimal
from typing import List

from rera_quotes.exceptions import ApprovalPermissionError
from rera_quotes.models.app_user import UserRole
from rera_quotes.models.quotation_approval import ApprovalLevel
from rera_quotes.utils.number_format import to_decimal

# Lower bounds are inclusive; highest threshold first
APPROVAL_THRESHOLDS = (
    (Decimal('30'), ApprovalLevel.DIRECTOR),
    (Decimal('20'), ApprovalLevel.SENIOR_MANAGER),
    (Decimal('10'), ApprovalLevel.MANAGER),
)


def required_approval_level(discount_percentage) -> ApprovalLevel:
    """
    Minimum approval level for an aggregate discount percentage.

    Examples:
        required_approval_level(9.99) -> AUTO_APPROVED
        required_approval_level(10) -> MANAGER
        required_approval_level(30) -> DIRECTOR
    """
    discount = to_decimal(discount_percentage)
    for threshold, level in APPROVAL_THRESHOLDS:
        if discount >= threshold:
            return level
    return ApprovalLevel.AUTO_APPROVED


def can_approve(role: UserRole, level: ApprovalLevel) -> bool:
    """A role may act on a level iff its rank is at least the level's rank."""
    return role.rank >= level.rank


def ensure_can_approve(role: UserRole, discount_percentage) -> ApprovalLevel:
    """
    Check that `role` may decide on a quotation with this discount.

    Roles without approval authority (sales) are always refused, even for
    levels they would outrank on paper.

    Returns:
        The required ApprovalLevel.

    Raises:
        ApprovalPermissionError: with the required level and the held role.
    """
    return ensure_can_decide(role, required_approval_level(discount_percentage), discount_percentage)


def ensure_can_decide(role: UserRole, level: ApprovalLevel, discount_percentage=0) -> ApprovalLevel:
    """
    Check that `role` clears an already decided approval level.

    Used for stored quotations, whose level was fixed from the exact
    discount when they were priced.
    """
    if not role.is_approver or not can_approve(role, level):
        raise ApprovalPermissionError(level, role, discount_percentage)
    return level


def approvable_levels(role: UserRole) -> List[ApprovalLevel]:
    """Levels of pending quotations this role may act on (empty for sales)."""
    if not role.is_approver:
        return []
    return [
        level for level in ApprovalLevel
        if level != ApprovalLevel.AUTO_APPROVED and can_approve(role, level)
    ]
