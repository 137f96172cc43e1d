"""
Integration tests for approve/reject decisions on pending quotations.
"""

import pytest
from decimal import Decimal

from rera_quotes.exceptions import (
    ApprovalPermissionError, ApprovalStateError, BusinessLogicError, NotFoundError
)
from rera_quotes.models import (
    AppUser, ApprovalDecision, ApprovalLevel, Quotation, QuotationApproval, QuotationStatus
)
from rera_quotes.services.approval_service import decide_quotation, pending_for_approver
from rera_quotes.services.notification_service import mail
from rera_quotes.services.pricing_engine import ServiceOverride
from rera_quotes.services.quotation_service import create_quotation, submit_quotation, update_quotation


@pytest.fixture
def pending_quotation(session, sales_user, catalog):
    """Factory: a submitted quotation with the registration line overridden."""
    def _make(registration_price):
        overrides = {catalog['registration_id']: ServiceOverride(Decimal(registration_price), 'Negotiated')}
        quotation = create_quotation(
            session,
            sales_user,
            catalog['developer_type_id'],
            catalog['service_ids'],
            region_id=catalog['region_id'],
            overrides=overrides,
            developer_name='Skyline Developers',
        )
        return submit_quotation(session, quotation.id, sales_user)
    return _make


@pytest.mark.usefixtures('app_ctx')
class TestDecisions:

    def test_manager_approves_manager_level(self, session, pending_quotation, manager):
        quotation = pending_quotation('52800')  # 16.7%

        record = decide_quotation(session, quotation.id, manager, 'approved', 'Fine')

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.APPROVED
        assert quotation.approved_by == manager.id
        assert quotation.approved_at is not None

        assert record.approval_status == ApprovalDecision.APPROVED
        assert record.approver_user_id == manager.id
        assert record.approval_level_required == ApprovalLevel.MANAGER
        assert record.original_amount == Decimal('79200')
        assert record.discounted_amount == Decimal('66000')
        assert record.comments == 'Fine'

    def test_reject_clears_approval_fields(self, session, pending_quotation, director):
        quotation = pending_quotation('40000')  # 32.8%

        record = decide_quotation(session, quotation.id, director, 'rejected', 'Too steep')

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.REJECTED
        assert quotation.approved_at is None
        assert quotation.approved_by is None
        assert record.approval_level_required == ApprovalLevel.DIRECTOR

    def test_rejection_requires_comments(self, session, pending_quotation, manager):
        quotation = pending_quotation('52800')

        with pytest.raises(BusinessLogicError, match='Comments are required'):
            decide_quotation(session, quotation.id, manager, 'rejected', '   ')

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.PENDING_APPROVAL

    def test_invalid_action(self, session, pending_quotation, manager):
        quotation = pending_quotation('52800')

        with pytest.raises(BusinessLogicError, match='Invalid action'):
            decide_quotation(session, quotation.id, manager, 'maybe')

    def test_manager_cannot_approve_senior_level(self, session, pending_quotation, manager):
        quotation = pending_quotation('46200')  # 25%

        with pytest.raises(ApprovalPermissionError) as exc_info:
            decide_quotation(session, quotation.id, manager, 'approved')

        assert exc_info.value.required_level == ApprovalLevel.SENIOR_MANAGER
        assert session.query(QuotationApproval).count() == 0
        session.refresh(quotation)
        assert quotation.status == QuotationStatus.PENDING_APPROVAL

    def test_sales_cannot_approve(self, session, pending_quotation, sales_user):
        quotation = pending_quotation('52800')

        with pytest.raises(ApprovalPermissionError):
            decide_quotation(session, quotation.id, sales_user, 'approved')

    def test_admin_can_approve_any_level(self, session, pending_quotation, admin_user):
        quotation = pending_quotation('40000')

        decide_quotation(session, quotation.id, admin_user, ApprovalDecision.APPROVED)

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.APPROVED

    def test_decision_on_decided_quotation(self, session, pending_quotation, manager, director):
        quotation = pending_quotation('52800')
        decide_quotation(session, quotation.id, manager, 'approved')

        with pytest.raises(ApprovalStateError) as exc_info:
            decide_quotation(session, quotation.id, director, 'rejected', 'Changed my mind')

        assert exc_info.value.status_code == 409
        assert exc_info.value.actual_status == 'approved'
        assert session.query(QuotationApproval).count() == 1

    def test_decision_on_draft(self, session, sales_user, catalog, manager):
        quotation = create_quotation(
            session, sales_user, catalog['developer_type_id'], catalog['service_ids'],
            developer_name='Skyline Developers',
        )

        with pytest.raises(ApprovalStateError) as exc_info:
            decide_quotation(session, quotation.id, manager, 'approved')
        assert exc_info.value.actual_status == 'draft'

    def test_missing_quotation(self, session, manager):
        with pytest.raises(NotFoundError):
            decide_quotation(session, 424242, manager, 'approved')

    def test_approval_records_are_immutable(self, session, pending_quotation, manager):
        quotation = pending_quotation('52800')
        record = decide_quotation(session, quotation.id, manager, 'approved', 'ok')

        record.comments = 'rewritten'
        with pytest.raises(BusinessLogicError, match='cannot be modified'):
            session.commit()
        session.rollback()

    def test_rejected_quotation_can_be_resubmitted(self, session, pending_quotation, sales_user, manager,
                                                   catalog):
        quotation = pending_quotation('52800')
        decide_quotation(session, quotation.id, manager, 'rejected', 'Add a reason')

        edited = update_quotation(
            session, quotation.id, sales_user,
            overrides={catalog['registration_id']: ServiceOverride(Decimal('52800'), 'Competitor quote')},
        )
        assert edited.status == QuotationStatus.DRAFT

        resubmitted = submit_quotation(session, quotation.id, sales_user)
        assert resubmitted.status == QuotationStatus.PENDING_APPROVAL

        decide_quotation(session, quotation.id, manager, 'approved')
        session.refresh(quotation)
        assert quotation.status == QuotationStatus.APPROVED
        assert [a.approval_status for a in quotation.approvals] == [
            ApprovalDecision.REJECTED, ApprovalDecision.APPROVED
        ]


@pytest.mark.usefixtures('app_ctx')
class TestConcurrentDecisions:

    def test_second_approver_gets_conflict(self, session, other_session, pending_quotation,
                                           manager, senior_manager):
        quotation = pending_quotation('52800')

        # The second approver has already loaded the quotation as pending
        stale = other_session.query(Quotation).filter_by(id=quotation.id).one()
        assert stale.status == QuotationStatus.PENDING_APPROVAL
        late_approver = other_session.get(AppUser, senior_manager.id)

        decide_quotation(session, quotation.id, manager, 'approved')

        with pytest.raises(ApprovalStateError) as exc_info:
            decide_quotation(other_session, quotation.id, late_approver, 'rejected', 'Too generous')

        assert exc_info.value.actual_status == 'approved'
        session.expire_all()
        records = session.query(QuotationApproval).filter_by(quotation_id=quotation.id).all()
        assert len(records) == 1
        assert records[0].approver_user_id == manager.id
        assert session.get(Quotation, quotation.id).status == QuotationStatus.APPROVED


@pytest.mark.usefixtures('app_ctx')
class TestNotifications:

    def test_submit_emails_eligible_approvers(self, session, sales_user, catalog, manager,
                                              senior_manager, director):
        overrides = {catalog['registration_id']: ServiceOverride(Decimal('46200'))}
        quotation = create_quotation(
            session, sales_user, catalog['developer_type_id'], catalog['service_ids'],
            region_id=catalog['region_id'], overrides=overrides, developer_name='Skyline Developers',
        )

        with mail.record_messages() as outbox:
            submit_quotation(session, quotation.id, sales_user)

        assert len(outbox) == 1
        message = outbox[0]
        assert message.subject == f'Approval Required: Quotation {quotation.quotation_number}'
        assert sorted(message.recipients) == sorted([senior_manager.email, director.email])
        assert 'Senior Manager Approval Required' in message.html

    def test_decision_emails_creator(self, session, pending_quotation, sales_user, manager):
        quotation = pending_quotation('52800')

        with mail.record_messages() as outbox:
            decide_quotation(session, quotation.id, manager, 'rejected', 'Needs <b>justification</b>')

        assert len(outbox) == 1
        message = outbox[0]
        assert message.subject == f'Quotation {quotation.quotation_number} Rejected'
        assert message.recipients == [sales_user.email]
        assert 'Mira Manager' in message.html
        assert '&lt;b&gt;justification&lt;/b&gt;' in message.html

    def test_mail_failure_does_not_undo_decision(self, session, pending_quotation, manager, monkeypatch):
        quotation = pending_quotation('52800')

        def broken_send(message):
            raise ConnectionError('SMTP down')

        monkeypatch.setattr(mail, 'send', broken_send)
        decide_quotation(session, quotation.id, manager, 'approved')

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.APPROVED


@pytest.mark.usefixtures('app_ctx')
class TestApproverQueue:

    def test_queue_is_filtered_by_authority(self, session, pending_quotation, manager, director, sales_user):
        manager_level = pending_quotation('52800')
        director_level = pending_quotation('40000')

        assert [q.id for q in pending_for_approver(session, manager)] == [manager_level.id]
        assert {q.id for q in pending_for_approver(session, director)} == {manager_level.id, director_level.id}
        assert pending_for_approver(session, sales_user) == []

    def test_discount_just_below_tier_is_decided_at_stored_level(self, session, sales_user, manager, big_ticket):
        # 200,000,000 off 1,000,000,001 is 19.99999998%, which rounds to 20% for display
        quotation = create_quotation(
            session,
            sales_user,
            big_ticket['developer_type_id'],
            [big_ticket['service_id']],
            overrides={big_ticket['service_id']: ServiceOverride(Decimal('800000001'), 'Anchor client')},
            developer_name='Mega Township Ltd',
        )
        submit_quotation(session, quotation.id, sales_user)
        session.refresh(quotation)
        assert quotation.approval_level == ApprovalLevel.MANAGER

        assert [q.id for q in pending_for_approver(session, manager)] == [quotation.id]

        record = decide_quotation(session, quotation.id, manager, 'approved', 'Within my limit')

        session.refresh(quotation)
        assert quotation.status == QuotationStatus.APPROVED
        assert record.approval_level_required == quotation.approval_level == ApprovalLevel.MANAGER
