"""Quotation service: create, re-price, submit and query quotations."""

import logging
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session, selectinload

from rera_quotes.exceptions import BusinessLogicError, NotFoundError
from rera_quotes.models import (
    AppUser, UserRole, PlotAreaRange, Quotation, QuotationStatus, QuotationServiceLine, ApprovalLevel
)
from rera_quotes.services.approval_gate import can_approve
from rera_quotes.services.notification_service import send_approval_request_notification
from rera_quotes.services.pricing_engine import (
    PricingFactors, QuotationPricing, ServiceOverride, ServicePricingLine,
    calculate_quotation_pricing, percentage_of, summarize_lines, validate_pricing,
)
from rera_quotes.services.reference_data_service import load_reference_data
from rera_quotes.utils.number_format import json_number

logger = logging.getLogger(__name__)

AGENT_FIELDS = ('mobile_number', 'email', 'agent_type')
AGENT_TYPES = ('individual', 'proprietary', 'private_ltd', 'llp', 'partnership', 'others')

HEADER_FIELDS = (
    'developer_name', 'project_name', 'project_location', 'plot_area',
    'rera_number', 'validity_days', 'payment_schedule', 'notes',
) + AGENT_FIELDS

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def generate_quotation_number() -> str:
    """Generate a unique quotation number (timestamp plus a random suffix)."""
    return f"RERA-{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:6].upper()}"


def _clean(value):
    if isinstance(value, str):
        return value.strip() or None
    return value


def _apply_header(quotation: Quotation, header: Mapping[str, Any]) -> None:
    for name in HEADER_FIELDS:
        if name in header:
            setattr(quotation, name, _clean(header[name]))
    if not quotation.developer_name:
        raise BusinessLogicError('Developer name is required.')


def _check_agent_header(quotation: Quotation) -> None:
    """Agent registrations need the agent's contact details and legal form."""
    if quotation.agent_type:
        quotation.agent_type = str(quotation.agent_type).lower()
        if quotation.agent_type not in AGENT_TYPES:
            raise BusinessLogicError(
                f"Invalid agent type '{quotation.agent_type}'. Use one of: {', '.join(AGENT_TYPES)}."
            )
    if quotation.email and not EMAIL_PATTERN.match(str(quotation.email)):
        raise BusinessLogicError('Invalid email. Use the format user@example.com')
    if not quotation.is_agent_registration:
        return

    missing = [name for name in AGENT_FIELDS if not getattr(quotation, name)]
    if missing:
        raise BusinessLogicError(f"Agent registrations require {', '.join(missing)}.")


def _apply_pricing(quotation: Quotation, pricing: QuotationPricing) -> None:
    """Flatten a pricing aggregate into the quotation row and its lines."""
    quotation.subtotal = pricing.subtotal
    quotation.total_discount_amount = pricing.total_discount_amount
    quotation.total_discount_percentage = pricing.total_discount_percentage
    quotation.total_amount = pricing.final_total
    quotation.rounded_total = pricing.rounded_total
    quotation.approval_level = pricing.approval_level
    quotation.is_agent_registration = pricing.is_agent_registration
    if pricing.is_agent_registration:
        # Fixed pricing: region and plot area play no part
        quotation.region_id = None
        quotation.plot_area_range_id = None

    quotation.lines = [
        QuotationServiceLine(
            service_id=line.service_id,
            position=position,
            service_name_snapshot=line.service_name,
            category_name_snapshot=line.category_name,
            base_price=line.base_price,
            original_price=line.calculated_price,
            final_price=line.final_price,
            discount_amount=line.discount_amount,
            discount_percentage=line.discount_percentage,
            discount_reason=line.discount_reason or None,
            developer_type_multiplier=line.pricing_factors.developer_type_multiplier,
            regional_multiplier=line.pricing_factors.regional_multiplier,
            plot_area_multiplier=line.pricing_factors.plot_area_multiplier,
            service_complexity_factor=line.pricing_factors.service_complexity_factor,
        )
        for position, line in enumerate(pricing.services)
    ]


def pricing_from_quotation(quotation: Quotation) -> QuotationPricing:
    """
    Rebuild the aggregate from stored lines (no catalog access).

    Line percentages are recomputed from the stored amounts, so validation
    sees the exact discount rather than the rounded stored copy.
    """
    lines = [
        ServicePricingLine(
            service_id=row.service_id,
            service_name=row.service_name_snapshot,
            base_price=Decimal(row.base_price),
            calculated_price=Decimal(row.original_price),
            final_price=Decimal(row.final_price),
            discount_amount=Decimal(row.discount_amount),
            discount_percentage=percentage_of(Decimal(row.discount_amount), Decimal(row.original_price)),
            discount_reason=row.discount_reason or '',
            pricing_factors=PricingFactors(
                developer_type_multiplier=Decimal(row.developer_type_multiplier),
                regional_multiplier=Decimal(row.regional_multiplier),
                plot_area_multiplier=Decimal(row.plot_area_multiplier),
                service_complexity_factor=Decimal(row.service_complexity_factor),
            ),
            category_name=row.category_name_snapshot,
        )
        for row in quotation.lines
    ]
    return summarize_lines(lines, is_agent_registration=bool(quotation.is_agent_registration))


def stored_overrides(quotation: Quotation) -> Dict[int, ServiceOverride]:
    """Per-service overrides remembered on the stored lines."""
    return {
        row.service_id: ServiceOverride(Decimal(row.final_price), row.discount_reason or '')
        for row in quotation.lines
        if Decimal(row.final_price) != Decimal(row.original_price) or row.discount_reason
    }


def detect_plot_area_range(session: Session, plot_area) -> Optional[int]:
    """Id of the active bracket containing `plot_area`, if any."""
    if plot_area is None:
        return None
    ranges = (
        session.query(PlotAreaRange)
        .filter(PlotAreaRange.is_active.is_(True))
        .order_by(PlotAreaRange.min_area)
        .all()
    )
    for bracket in ranges:
        if bracket.contains(plot_area):
            return bracket.id
    return None


def _price_selection(session, developer_type_id, region_id, plot_area_range_id, service_ids, overrides) -> QuotationPricing:
    reference = load_reference_data(session)
    pricing = calculate_quotation_pricing(
        reference,
        developer_type_id,
        region_id=region_id,
        plot_area_range_id=plot_area_range_id,
        selected_service_ids=list(service_ids or []),
        overrides=overrides,
    )
    if not pricing.services:
        raise BusinessLogicError('Select at least one service.')
    return pricing


def create_quotation(
    session: Session,
    creator: AppUser,
    developer_type_id: int,
    service_ids: Iterable[int],
    region_id: Optional[int] = None,
    plot_area_range_id: Optional[int] = None,
    overrides: Optional[Mapping[int, ServiceOverride]] = None,
    **header,
) -> Quotation:
    """
    Price a selection and persist it as a draft quotation.

    Without an explicit bracket the plot area picks one.
    """
    try:
        if plot_area_range_id is None:
            plot_area_range_id = detect_plot_area_range(session, header.get('plot_area'))
        pricing = _price_selection(session, developer_type_id, region_id, plot_area_range_id, service_ids, overrides)

        quotation = Quotation(
            quotation_number=generate_quotation_number(),
            created_by=creator.id,
            status=QuotationStatus.DRAFT,
            developer_type_id=developer_type_id,
            region_id=region_id,
            plot_area_range_id=plot_area_range_id,
            validity_days=header.pop('validity_days', None) or 30,
        )
        _apply_header(quotation, header)
        _apply_pricing(quotation, pricing)
        _check_agent_header(quotation)

        session.add(quotation)
        session.commit()
        logger.info(
            f"[QUOTATION] Created {quotation.quotation_number}: total={pricing.final_total} "
            f"discount={pricing.total_discount_percentage:.2f}% level={pricing.approval_level.value}"
        )
        return quotation
    except (BusinessLogicError, NotFoundError) as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise


def update_quotation(session: Session, quotation_id: int, actor: AppUser, **changes) -> Quotation:
    """
    Re-price an editable quotation.

    Selections and overrides not passed in `changes` are kept from the
    stored quotation. Editing a rejected quotation sends it back to draft
    for resubmission; its approval history is kept.
    """
    try:
        quotation = session.query(Quotation).filter(Quotation.id == quotation_id).with_for_update().first()
        if not quotation:
            raise NotFoundError(f'Quotation {quotation_id} not found.')
        if quotation.created_by != actor.id and actor.role != UserRole.ADMIN:
            raise BusinessLogicError('Only the creator can edit this quotation.', status_code=403)
        if not quotation.is_editable:
            raise BusinessLogicError(
                f'Quotation {quotation.quotation_number} cannot be edited (status: {quotation.status.value}).'
            )

        developer_type_id = changes.pop('developer_type_id', quotation.developer_type_id)
        region_id = changes.pop('region_id', quotation.region_id)
        if 'plot_area' in changes and 'plot_area_range_id' not in changes:
            changes['plot_area_range_id'] = detect_plot_area_range(session, changes['plot_area'])
        plot_area_range_id = changes.pop('plot_area_range_id', quotation.plot_area_range_id)
        service_ids = changes.pop('service_ids', None)
        if service_ids is None:
            service_ids = [row.service_id for row in quotation.lines]
        overrides = changes.pop('overrides', None)
        if overrides is None:
            overrides = stored_overrides(quotation)

        pricing = _price_selection(session, developer_type_id, region_id, plot_area_range_id, service_ids, overrides)

        quotation.developer_type_id = developer_type_id
        quotation.region_id = region_id
        quotation.plot_area_range_id = plot_area_range_id
        _apply_header(quotation, changes)
        _apply_pricing(quotation, pricing)
        _check_agent_header(quotation)

        if quotation.status == QuotationStatus.REJECTED:
            quotation.status = QuotationStatus.DRAFT

        session.commit()
        logger.info(f"[QUOTATION] Updated {quotation.quotation_number}: level={pricing.approval_level.value}")
        return quotation
    except (BusinessLogicError, NotFoundError) as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise


def submit_quotation(session: Session, quotation_id: int, actor: AppUser) -> Quotation:
    """
    Submit a draft.

    Drafts that fail pricing validation are refused. Quotations whose
    discount needs no approval are approved on the spot (no approval
    record, there was no human decision). The others move to
    pending_approval and eligible approvers are emailed.
    """
    try:
        quotation = session.query(Quotation).filter(Quotation.id == quotation_id).with_for_update().first()
        if not quotation:
            raise NotFoundError(f'Quotation {quotation_id} not found.')
        if quotation.created_by != actor.id and actor.role != UserRole.ADMIN:
            raise BusinessLogicError('Only the creator can submit this quotation.', status_code=403)
        if quotation.status != QuotationStatus.DRAFT:
            raise BusinessLogicError(
                f'Quotation {quotation.quotation_number} cannot be submitted (status: {quotation.status.value}).'
            )

        validation = validate_pricing(pricing_from_quotation(quotation))
        if not validation.is_valid:
            raise BusinessLogicError(
                f'Quotation {quotation.quotation_number} failed pricing validation.',
                payload={'errors': list(validation.errors)},
            )

        if quotation.needs_approval:
            quotation.status = QuotationStatus.PENDING_APPROVAL
        else:
            quotation.status = QuotationStatus.APPROVED
            quotation.approved_at = datetime.now(timezone.utc)
            quotation.approved_by = None

        session.commit()
    except (BusinessLogicError, NotFoundError) as e:
        session.rollback()
        raise e
    except Exception:
        session.rollback()
        raise

    logger.info(f"[QUOTATION] Submitted {quotation.quotation_number}: status={quotation.status.value}")
    if quotation.status == QuotationStatus.PENDING_APPROVAL:
        approvers = eligible_approvers(session, quotation.approval_level)
        send_approval_request_notification(quotation, [user.email for user in approvers])
    return quotation


def eligible_approvers(session: Session, level: ApprovalLevel) -> List[AppUser]:
    """Active users whose role clears `level`."""
    users = session.query(AppUser).filter(AppUser.active.is_(True)).all()
    return [user for user in users if user.role.is_approver and can_approve(user.role, level)]


def get_quotation(session: Session, quotation_id: int) -> Quotation:
    """Fetch a quotation with its lines and approval history."""
    quotation = (
        session.query(Quotation)
        .options(selectinload(Quotation.lines), selectinload(Quotation.approvals))
        .filter(Quotation.id == quotation_id)
        .first()
    )
    if not quotation:
        raise NotFoundError(f'Quotation {quotation_id} not found.')
    return quotation


def list_quotations(
    session: Session,
    status: Optional[QuotationStatus] = None,
    min_discount: Optional[Decimal] = None,
    created_by: Optional[int] = None,
    approval_levels: Optional[Iterable[ApprovalLevel]] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Quotation]:
    """List quotations, most recent first, with optional filters."""
    query = session.query(Quotation)

    if status is not None:
        query = query.filter(Quotation.status == status)
    if min_discount is not None:
        query = query.filter(Quotation.total_discount_percentage >= min_discount)
    if created_by is not None:
        query = query.filter(Quotation.created_by == created_by)
    if approval_levels is not None:
        query = query.filter(Quotation.approval_level.in_(list(approval_levels)))

    query = query.order_by(Quotation.created_at.desc(), Quotation.id.desc())
    return query.limit(limit).offset(offset).all()


def _iso(value):
    return value.isoformat() if value else None


def serialize_quotation(quotation: Quotation, include_lines: bool = True) -> Dict[str, Any]:
    """Plain dict of a quotation: header, totals, lines and approval history."""
    data = {
        'id': quotation.id,
        'quotation_number': quotation.quotation_number,
        'status': quotation.status.value,
        'developer_type_id': quotation.developer_type_id,
        'developer_type': quotation.developer_type.name if quotation.developer_type else None,
        'region_id': quotation.region_id,
        'region': quotation.region.name if quotation.region else None,
        'plot_area_range_id': quotation.plot_area_range_id,
        'plot_area_range': quotation.plot_area_range.name if quotation.plot_area_range else None,
        'developer_name': quotation.developer_name,
        'project_name': quotation.project_name,
        'project_location': quotation.project_location,
        'plot_area': json_number(quotation.plot_area),
        'rera_number': quotation.rera_number,
        'validity_days': quotation.validity_days,
        'payment_schedule': quotation.payment_schedule,
        'notes': quotation.notes,
        'is_agent_registration': bool(quotation.is_agent_registration),
        'agent_type': quotation.agent_type,
        'mobile_number': quotation.mobile_number,
        'email': quotation.email,
        'created_by': quotation.created_by,
        'original_amount': json_number(quotation.original_amount),
        'subtotal': json_number(quotation.subtotal),
        'total_discount_amount': json_number(quotation.total_discount_amount),
        'total_discount_percentage': float(quotation.total_discount_percentage or 0),
        'total_amount': json_number(quotation.total_amount),
        'rounded_total': json_number(quotation.rounded_total),
        'approval_level': quotation.approval_level.value,
        'needs_approval': quotation.needs_approval,
        'approved_at': _iso(quotation.approved_at),
        'approved_by': quotation.approved_by,
        'created_at': _iso(quotation.created_at),
    }
    if include_lines:
        data['services'] = [
            {
                'service_id': row.service_id,
                'service_name': row.service_name_snapshot,
                'category_name': row.category_name_snapshot,
                'base_price': json_number(row.base_price),
                'calculated_price': json_number(row.original_price),
                'final_price': json_number(row.final_price),
                'discount_amount': json_number(row.discount_amount),
                'discount_percentage': float(row.discount_percentage),
                'discount_reason': row.discount_reason or '',
            }
            for row in quotation.lines
        ]
        data['approvals'] = [
            {
                'id': approval.id,
                'approver_user_id': approval.approver_user_id,
                'approver': approval.approver.display_name if approval.approver else None,
                'approval_status': approval.approval_status.value,
                'approval_date': _iso(approval.approval_date),
                'comments': approval.comments,
                'approval_level_required': approval.approval_level_required.value,
                'original_amount': json_number(approval.original_amount),
                'discounted_amount': json_number(approval.discounted_amount),
                'discount_percentage': float(approval.discount_percentage),
            }
            for approval in quotation.approvals
        ]
    return data
