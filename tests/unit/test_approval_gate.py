"""
Unit tests for the approval gate.
"""

import pytest
from decimal import Decimal

from rera_quotes.exceptions import ApprovalPermissionError
from rera_quotes.models import ApprovalLevel, UserRole
from rera_quotes.services.approval_gate import (
    approvable_levels,
    can_approve,
    ensure_can_approve,
    ensure_can_decide,
    required_approval_level,
)


class TestRequiredApprovalLevel:

    @pytest.mark.parametrize('percentage, expected', [
        (Decimal('0'), ApprovalLevel.AUTO_APPROVED),
        (Decimal('9.99'), ApprovalLevel.AUTO_APPROVED),
        (Decimal('9.9999'), ApprovalLevel.AUTO_APPROVED),
        (Decimal('10'), ApprovalLevel.MANAGER),
        (Decimal('19.99'), ApprovalLevel.MANAGER),
        (Decimal('20.0'), ApprovalLevel.SENIOR_MANAGER),
        (Decimal('25'), ApprovalLevel.SENIOR_MANAGER),
        (Decimal('30'), ApprovalLevel.DIRECTOR),
        (Decimal('100'), ApprovalLevel.DIRECTOR),
    ])
    def test_thresholds_inclusive_at_lower_edge(self, percentage, expected):
        assert required_approval_level(percentage) == expected

    def test_accepts_plain_numbers(self):
        assert required_approval_level(10) == ApprovalLevel.MANAGER
        assert required_approval_level(9.99) == ApprovalLevel.AUTO_APPROVED


class TestAuthority:

    def test_manager_cannot_act_on_senior_manager_level(self):
        assert can_approve(UserRole.MANAGER, ApprovalLevel.MANAGER)
        assert not can_approve(UserRole.MANAGER, ApprovalLevel.SENIOR_MANAGER)

    def test_admin_can_act_on_every_level(self):
        for level in ApprovalLevel:
            assert can_approve(UserRole.ADMIN, level)

    def test_director_can_act_on_director_level(self):
        assert can_approve(UserRole.DIRECTOR, ApprovalLevel.DIRECTOR)

    def test_ensure_can_approve_returns_level(self):
        assert ensure_can_approve(UserRole.SENIOR_MANAGER, Decimal('25')) == ApprovalLevel.SENIOR_MANAGER
        assert ensure_can_approve(UserRole.ADMIN, Decimal('5')) == ApprovalLevel.AUTO_APPROVED

    def test_ensure_can_approve_reports_required_and_held(self):
        with pytest.raises(ApprovalPermissionError) as exc_info:
            ensure_can_approve(UserRole.MANAGER, Decimal('25'))

        error = exc_info.value
        assert error.status_code == 403
        assert error.required_level == ApprovalLevel.SENIOR_MANAGER
        assert error.held_role == UserRole.MANAGER
        assert 'senior_manager approval required for 25.0% discount' in error.message
        assert error.to_dict()['required_level'] == 'senior_manager'
        assert error.to_dict()['held_role'] == 'manager'

    def test_ensure_can_decide_uses_given_level(self):
        # A stored level wins over a rounded percentage sitting on the next tier
        level = ensure_can_decide(UserRole.MANAGER, ApprovalLevel.MANAGER, Decimal('20.0000'))
        assert level == ApprovalLevel.MANAGER

        with pytest.raises(ApprovalPermissionError) as exc_info:
            ensure_can_decide(UserRole.MANAGER, ApprovalLevel.DIRECTOR, Decimal('31'))
        assert exc_info.value.required_level == ApprovalLevel.DIRECTOR

    def test_sales_can_never_approve(self):
        with pytest.raises(ApprovalPermissionError):
            ensure_can_approve(UserRole.SALES, Decimal('0'))
        assert approvable_levels(UserRole.SALES) == []

    def test_approvable_levels(self):
        assert approvable_levels(UserRole.MANAGER) == [ApprovalLevel.MANAGER]
        assert approvable_levels(UserRole.DIRECTOR) == [
            ApprovalLevel.MANAGER, ApprovalLevel.SENIOR_MANAGER, ApprovalLevel.DIRECTOR
        ]
