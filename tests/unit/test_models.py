"""
Unit tests for SQLAlchemy models.
"""

import pytest
import uuid
from datetime import datetime, date
from decimal import Decimal

from rera_quotes.models import (
    AppUser, UserRole, DeveloperType, PlotAreaRange, Quotation, QuotationStatus, ApprovalLevel,
    QuotationApproval, QuotationServiceLine,
)


class TestAppUserModel:
    """Tests for AppUser model."""

    def test_create_user(self, session):
        """Test creating a user."""
        email = f'test_{str(uuid.uuid4())[:8]}@example.com'
        user = AppUser(email=email, full_name='Test User')
        session.add(user)
        session.commit()

        assert user.id is not None
        assert user.role == UserRole.SALES
        assert user.active is True
        assert user.display_name == 'Test User'

    def test_email_unique(self, session, sales_user):
        """Test that email must be unique."""
        session.add(AppUser(email=sales_user.email, full_name='Duplicate'))

        with pytest.raises(Exception):  # IntegrityError
            session.commit()

    def test_display_name_falls_back_to_email(self):
        assert AppUser(email='a@b.com').display_name == 'a@b.com'

    def test_role_ranks(self):
        assert [role.rank for role in UserRole] == [0, 1, 2, 3, 4]
        assert UserRole.SALES.is_approver is False
        assert UserRole.MANAGER.is_approver is True


class TestReferenceModels:
    """Tests for the pricing catalog models."""

    def test_multiplier_must_be_positive(self, session):
        session.add(DeveloperType(name='Broken', multiplier=Decimal('0')))

        with pytest.raises(Exception):  # IntegrityError (check constraint)
            session.commit()

    def test_plot_area_range_contains(self):
        bracket = PlotAreaRange(name='Mid', min_area=Decimal('5000.01'), max_area=Decimal('20000'))
        open_ended = PlotAreaRange(name='Top', min_area=Decimal('20000.01'), max_area=None)

        assert bracket.contains(Decimal('5000.01'))
        assert bracket.contains(Decimal('20000'))
        assert not bracket.contains(Decimal('5000'))
        assert not bracket.contains(None)
        assert open_ended.contains(Decimal('1000000'))


class TestQuotationModel:
    """Tests for Quotation model properties."""

    def test_original_amount(self):
        quotation = Quotation(total_amount=Decimal('59400'), total_discount_amount=Decimal('19800'))

        assert quotation.original_amount == Decimal('79200')

    def test_needs_approval(self):
        assert Quotation(approval_level=ApprovalLevel.MANAGER).needs_approval is True
        assert Quotation(approval_level=ApprovalLevel.AUTO_APPROVED).needs_approval is False

    def test_valid_until(self):
        quotation = Quotation(created_at=datetime(2024, 3, 1, 10, 0), validity_days=30)

        assert quotation.valid_until == date(2024, 3, 31)
        assert Quotation(validity_days=30).valid_until is None

    @pytest.mark.parametrize('status, editable', [
        (QuotationStatus.DRAFT, True),
        (QuotationStatus.REJECTED, True),
        (QuotationStatus.PENDING_APPROVAL, False),
        (QuotationStatus.APPROVED, False),
    ])
    def test_is_editable(self, status, editable):
        assert Quotation(status=status).is_editable is editable

    @pytest.mark.parametrize('column', [
        Quotation.__table__.c.total_discount_percentage,
        QuotationServiceLine.__table__.c.discount_percentage,
        QuotationApproval.__table__.c.discount_percentage,
    ])
    def test_discount_percentages_hold_large_surcharges(self, column):
        # -99,999,999,800% is the worst case for a 1-unit line priced at the cap
        assert column.type.precision - column.type.scale >= 11
        assert column.type.scale >= 6

    def test_agent_registration_defaults(self, session, developer_type):
        assert developer_type.is_agent_registration is False
