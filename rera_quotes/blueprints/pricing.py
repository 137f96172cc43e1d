"""Pricing API blueprint: live price calculation for the quotation builder."""
import logging
from typing import Any, Dict, List, Mapping, Optional

from flask import Blueprint, request, jsonify

from rera_quotes.database import get_session
from rera_quotes.exceptions import BusinessLogicError
from rera_quotes.middleware import require_login
from rera_quotes.services.pricing_engine import (
    MAX_SERVICE_PRICE,
    ServiceOverride,
    calculate_quotation_pricing,
    pricing_breakdown,
    update_service_price,
    validate_pricing,
)
from rera_quotes.services.reference_data_service import load_reference_data
from rera_quotes.utils.number_format import json_number, parse_amount

logger = logging.getLogger(__name__)

pricing_bp = Blueprint('pricing', __name__, url_prefix='/api/pricing')


# ---------------------------------------------------------------------------
# Request parsing (shared with the quotations blueprint)
# ---------------------------------------------------------------------------

def json_payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BusinessLogicError('Request body must be a JSON object.')
    return payload


def parse_id(value, field: str, required: bool = False) -> Optional[int]:
    if value is None or value == '':
        if required:
            raise BusinessLogicError(f'{field} is required.')
        return None
    if isinstance(value, bool):
        raise BusinessLogicError(f'{field} must be an integer.')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BusinessLogicError(f'{field} must be an integer.')


def parse_service_ids(value) -> List[int]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise BusinessLogicError('service_ids must be a list.')
    return [parse_id(item, 'service_ids', required=True) for item in value]


def parse_override(entry, service_id) -> ServiceOverride:
    """
    One override: either a bare price or
    {"modified_price": ..., "discount_reason": ...}.
    """
    if not isinstance(entry, Mapping):
        entry = {'modified_price': entry}

    price = entry.get('modified_price')
    reason = (entry.get('discount_reason') or '').strip()
    if price is None:
        return ServiceOverride(None, reason)
    try:
        amount = parse_amount(price, f'Price for service {service_id}', maximum=MAX_SERVICE_PRICE)
    except ValueError as e:
        raise BusinessLogicError(str(e))
    return ServiceOverride(amount, reason)


def parse_overrides(value) -> Dict[int, ServiceOverride]:
    """
    Accepts {"<service_id>": entry} or [{"service_id": ..., **entry}].
    """
    if not value:
        return {}
    if isinstance(value, Mapping):
        items = value.items()
    elif isinstance(value, list):
        items = [(item.get('service_id') if isinstance(item, Mapping) else None, item) for item in value]
    else:
        raise BusinessLogicError('overrides must be an object or a list.')

    overrides = {}
    for raw_id, entry in items:
        service_id = parse_id(raw_id, 'overrides service_id', required=True)
        overrides[service_id] = parse_override(entry, service_id)
    return overrides


def parse_selection(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Pricing inputs shared by calculation, creation and update requests."""
    return {
        'developer_type_id': parse_id(payload.get('developer_type_id'), 'developer_type_id', required=True),
        'region_id': parse_id(payload.get('region_id'), 'region_id'),
        'plot_area_range_id': parse_id(payload.get('plot_area_range_id'), 'plot_area_range_id'),
        'service_ids': parse_service_ids(payload.get('service_ids')),
        'overrides': parse_overrides(payload.get('overrides')),
    }


def pricing_response(pricing) -> Dict[str, Any]:
    validation = validate_pricing(pricing)
    return {
        'status': 'success',
        'pricing': pricing.to_dict(),
        'validation': validation.to_dict(),
        'breakdown': [
            dict(service_id=line.service_id, **pricing_breakdown(line))
            for line in pricing.services
        ],
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@pricing_bp.route('/reference-data')
@require_login
def reference_data():
    """Active catalog for the quotation builder."""
    reference = load_reference_data(get_session())

    def record(r):
        return {'id': r.id, 'name': r.name, 'multiplier': json_number(r.multiplier)}

    def axis(records):
        return [record(r) for r in records]

    return jsonify({
        'status': 'success',
        'developer_types': [
            dict(record(r), is_agent_registration=r.is_agent_registration)
            for r in reference.developer_types
        ],
        'regions': axis(reference.regions),
        'plot_area_ranges': axis(reference.plot_area_ranges),
        'service_categories': axis(reference.service_categories),
        'services': [
            {
                'id': s.id,
                'name': s.name,
                'category_id': s.category_id,
                'category_name': s.category_name,
                'base_price': json_number(s.base_price),
                'is_mandatory': s.is_mandatory,
            }
            for s in reference.services
        ],
        'mandatory_service_ids': reference.mandatory_service_ids(),
    })


@pricing_bp.route('/calculate', methods=['POST'])
@require_login
def calculate():
    """
    Price a selection without persisting anything.

    When service_ids is omitted the mandatory services are priced.
    """
    payload = json_payload()
    selection = parse_selection(payload)
    reference = load_reference_data(get_session())

    service_ids = selection['service_ids'] if 'service_ids' in payload else reference.mandatory_service_ids()
    pricing = calculate_quotation_pricing(
        reference,
        selection['developer_type_id'],
        region_id=selection['region_id'],
        plot_area_range_id=selection['plot_area_range_id'],
        selected_service_ids=service_ids,
        overrides=selection['overrides'],
    )
    return jsonify(pricing_response(pricing))


@pricing_bp.route('/update-line', methods=['POST'])
@require_login
def update_line():
    """
    Re-price a selection with one line's final price replaced.

    Body: the selection (as for /calculate) plus service_id, new_price
    and an optional discount_reason.
    """
    payload = json_payload()
    selection = parse_selection(payload)
    service_id = parse_id(payload.get('service_id'), 'service_id', required=True)
    try:
        new_price = parse_amount(payload.get('new_price'), 'new_price', maximum=MAX_SERVICE_PRICE)
    except ValueError as e:
        raise BusinessLogicError(str(e))
    discount_reason = (payload.get('discount_reason') or '').strip()

    reference = load_reference_data(get_session())
    pricing = calculate_quotation_pricing(
        reference,
        selection['developer_type_id'],
        region_id=selection['region_id'],
        plot_area_range_id=selection['plot_area_range_id'],
        selected_service_ids=selection['service_ids'],
        overrides=selection['overrides'],
    )
    if pricing.line_for(service_id) is None:
        raise BusinessLogicError(f'Service {service_id} is not part of this selection.')

    pricing = update_service_price(pricing, service_id, new_price, discount_reason)
    logger.info(
        f"[PRICING] Line {service_id} set to {new_price}: total={pricing.final_total} "
        f"level={pricing.approval_level.value}"
    )
    return jsonify(pricing_response(pricing))
