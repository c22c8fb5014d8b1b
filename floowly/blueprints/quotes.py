"""Quotes API blueprint - Multi-Tenant."""
from decimal import Decimal

from flask import Blueprint, request, jsonify, g

from floowly.database import get_session
from floowly.exceptions import ValidationError
from floowly.middleware import require_login, require_tenant
from floowly.services.quote_service import (
    list_quotes,
    get_quote,
    create_quote,
    update_quote,
    change_status,
    delete_quote,
    get_quote_stats
)
from floowly.utils.formatters import money_json
from floowly.utils.http import get_json_body

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/quotes')


@quotes_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_quotes_view():
    """List quotes (tenant-scoped) with search/status/customer filters."""
    quotes = list_quotes(
        get_session(),
        g.tenant_id,
        search=request.args.get('search', '').strip() or None,
        status=request.args.get('status', '').strip() or None,
        customer_id=request.args.get('customer_id', type=int)
    )
    return jsonify([quote.to_json() for quote in quotes])


@quotes_bp.route('', methods=['POST'])
@require_login
@require_tenant
def create_quote_view():
    """Create a quote; item totals are always computed server-side."""
    quote = create_quote(get_session(), g.tenant_id, get_json_body(), user_id=g.user.id)
    return jsonify(quote.to_json()), 201


@quotes_bp.route('/stats', methods=['GET'])
@require_login
@require_tenant
def quote_stats_view():
    """Counts per status, total/accepted value and conversion rate."""
    stats = get_quote_stats(get_session(), g.tenant_id)
    return jsonify({
        key: money_json(value) if isinstance(value, Decimal) else value
        for key, value in stats.items()
    })


@quotes_bp.route('/<int:quote_id>', methods=['GET'])
@require_login
@require_tenant
def get_quote_view(quote_id):
    return jsonify(get_quote(get_session(), g.tenant_id, quote_id).to_json())


@quotes_bp.route('/<int:quote_id>', methods=['PUT'])
@require_login
@require_tenant
def update_quote_view(quote_id):
    """Partial update; sending items replaces them and recalculates totals."""
    quote = update_quote(get_session(), g.tenant_id, quote_id, get_json_body(), user_id=g.user.id)
    return jsonify(quote.to_json())


@quotes_bp.route('/<int:quote_id>/status', methods=['PUT'])
@require_login
@require_tenant
def change_status_view(quote_id):
    """Transition a quote to the requested status."""
    data = get_json_body()
    if not data.get('status'):
        raise ValidationError('Status is required', field='status')

    quote = change_status(get_session(), g.tenant_id, quote_id, data['status'], user_id=g.user.id)
    return jsonify(quote.to_json())


@quotes_bp.route('/<int:quote_id>', methods=['DELETE'])
@require_login
@require_tenant
def delete_quote_view(quote_id):
    delete_quote(get_session(), g.tenant_id, quote_id, user_id=g.user.id)
    return jsonify({'status': 'ok', 'message': 'Quote deleted'})
