"""Approvals blueprint: the approver's queue and decisions."""
from flask import Blueprint, jsonify, g

from rera_quotes.blueprints.pricing import json_payload
from rera_quotes.database import get_session
from rera_quotes.middleware import require_login
from rera_quotes.services.approval_service import decide_quotation, pending_for_approver
from rera_quotes.services.quotation_service import get_quotation, serialize_quotation

approvals_bp = Blueprint('approvals', __name__, url_prefix='/approvals')


@approvals_bp.route('/')
@require_login
def pending():
    """Pending quotations the current user's role can decide on."""
    quotations = pending_for_approver(get_session(), g.user)
    return jsonify({
        'status': 'success',
        'quotations': [serialize_quotation(q, include_lines=False) for q in quotations],
    })


@approvals_bp.route('/<int:quotation_id>', methods=['POST'])
@require_login
def decide(quotation_id):
    """
    Approve or reject a pending quotation.

    Body: {"action": "approved" | "rejected", "comments": "..."}.
    Comments are required for rejections.
    """
    payload = json_payload()
    db_session = get_session()

    record = decide_quotation(
        db_session,
        quotation_id,
        g.user,
        payload.get('action'),
        payload.get('comments'),
    )
    quotation = get_quotation(db_session, quotation_id)

    return jsonify({
        'status': 'success',
        'approval_id': record.id,
        'quotation': serialize_quotation(quotation),
    })
