"""Quotations blueprint: drafts, submission and PDF download."""
from flask import Blueprint, request, jsonify, send_file, current_app, g

from rera_quotes.blueprints.pricing import (
    json_payload, parse_id, parse_overrides, parse_selection, parse_service_ids
)
from rera_quotes.database import get_session
from rera_quotes.exceptions import BusinessLogicError, UnauthorizedError
from rera_quotes.middleware import require_login
from rera_quotes.models import QuotationStatus, UserRole
from rera_quotes.services.document_service import render_quotation_pdf, business_info_from_config
from rera_quotes.services.pricing_engine import validate_pricing
from rera_quotes.services.quotation_service import (
    HEADER_FIELDS,
    create_quotation,
    get_quotation,
    list_quotations,
    pricing_from_quotation,
    serialize_quotation,
    submit_quotation,
    update_quotation,
)
from rera_quotes.utils.number_format import parse_amount

quotations_bp = Blueprint('quotations', __name__, url_prefix='/quotations')


def _parse_header(payload):
    """Header fields present in the payload, typed."""
    header = {name: payload[name] for name in HEADER_FIELDS if name in payload}

    if header.get('plot_area') not in (None, ''):
        try:
            header['plot_area'] = parse_amount(header['plot_area'], 'plot_area')
        except ValueError as e:
            raise BusinessLogicError(str(e))
    elif 'plot_area' in header:
        header['plot_area'] = None

    if 'validity_days' in header:
        days = parse_id(header['validity_days'], 'validity_days')
        if days is not None and days <= 0:
            raise BusinessLogicError('validity_days must be positive.')
        header['validity_days'] = days
    return header


def _ensure_can_view(quotation):
    """Sales staff only see their own quotations."""
    if g.user.role == UserRole.SALES and quotation.created_by != g.user.id:
        raise UnauthorizedError('You can only access your own quotations.')


def _detail_response(quotation, status_code=200):
    validation = validate_pricing(pricing_from_quotation(quotation))
    return jsonify({
        'status': 'success',
        'quotation': serialize_quotation(quotation),
        'validation': validation.to_dict(),
    }), status_code


@quotations_bp.route('/')
@require_login
def list_all():
    """
    List quotations, most recent first.

    Query params: status, min_discount, limit, offset. Sales users only
    see their own quotations.
    """
    status = None
    status_arg = request.args.get('status', '').strip().lower()
    if status_arg:
        try:
            status = QuotationStatus(status_arg)
        except ValueError:
            raise BusinessLogicError(f"Invalid status '{status_arg}'.")

    min_discount = None
    if request.args.get('min_discount'):
        try:
            min_discount = parse_amount(request.args['min_discount'], 'min_discount')
        except ValueError as e:
            raise BusinessLogicError(str(e))

    limit = min(request.args.get('limit', 100, type=int), 500)
    offset = request.args.get('offset', 0, type=int)
    created_by = g.user.id if g.user.role == UserRole.SALES else None

    quotations = list_quotations(
        get_session(),
        status=status,
        min_discount=min_discount,
        created_by=created_by,
        limit=limit,
        offset=offset,
    )
    return jsonify({
        'status': 'success',
        'quotations': [serialize_quotation(q, include_lines=False) for q in quotations],
    })


@quotations_bp.route('/', methods=['POST'])
@require_login
def create():
    """Create a draft quotation from a selection and header fields."""
    payload = json_payload()
    selection = parse_selection(payload)
    header = _parse_header(payload)
    if not header.get('validity_days'):
        header['validity_days'] = current_app.config.get('QUOTATION_VALID_DAYS', 30)

    quotation = create_quotation(
        get_session(),
        g.user,
        selection['developer_type_id'],
        selection['service_ids'],
        region_id=selection['region_id'],
        plot_area_range_id=selection['plot_area_range_id'],
        overrides=selection['overrides'],
        **header,
    )
    return _detail_response(quotation, 201)


@quotations_bp.route('/<int:quotation_id>')
@require_login
def view(quotation_id):
    """Quotation with its lines and approval history."""
    quotation = get_quotation(get_session(), quotation_id)
    _ensure_can_view(quotation)
    return _detail_response(quotation)


@quotations_bp.route('/<int:quotation_id>', methods=['PUT'])
@require_login
def update(quotation_id):
    """
    Edit a draft (or rejected) quotation. Only the keys present in the
    body change; the rest is kept from the stored quotation.
    """
    payload = json_payload()
    changes = _parse_header(payload)

    if 'developer_type_id' in payload:
        changes['developer_type_id'] = parse_id(payload['developer_type_id'], 'developer_type_id', required=True)
    for field in ('region_id', 'plot_area_range_id'):
        if field in payload:
            changes[field] = parse_id(payload[field], field)
    if 'service_ids' in payload:
        changes['service_ids'] = parse_service_ids(payload['service_ids'])
    if 'overrides' in payload:
        changes['overrides'] = parse_overrides(payload['overrides'])

    quotation = update_quotation(get_session(), quotation_id, g.user, **changes)
    return _detail_response(quotation)


@quotations_bp.route('/<int:quotation_id>/submit', methods=['POST'])
@require_login
def submit(quotation_id):
    """Submit a draft: auto-approved or sent for approval."""
    quotation = submit_quotation(get_session(), quotation_id, g.user)
    return _detail_response(quotation)


@quotations_bp.route('/<int:quotation_id>/pdf')
@require_login
def download_pdf(quotation_id):
    """Download the quotation as a PDF."""
    quotation = get_quotation(get_session(), quotation_id)
    _ensure_can_view(quotation)

    pdf_buffer = render_quotation_pdf(quotation, business_info_from_config(current_app.config))
    current_app.logger.info(f"[QUOTATION] PDF generated for {quotation.quotation_number} by {g.user.email}")

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"quotation_{quotation.quotation_number}.pdf"
    )
