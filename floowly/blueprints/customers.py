"""Customers API blueprint - Multi-Tenant."""
from decimal import Decimal

from flask import Blueprint, request, jsonify, g

from floowly.database import get_session
from floowly.middleware import require_login, require_tenant
from floowly.utils.http import get_json_body
from floowly.services.customer_service import (
    list_customers,
    get_customer,
    create_customer,
    update_customer,
    delete_customer,
    get_customer_stats
)
from floowly.utils.formatters import money_json

customers_bp = Blueprint('customers', __name__, url_prefix='/api/customers')


@customers_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_customers_view():
    """List customers (tenant-scoped), optionally filtered by ?search=."""
    customers = list_customers(get_session(), g.tenant_id, search=request.args.get('search', '').strip() or None)
    return jsonify([customer.to_dict() for customer in customers])


@customers_bp.route('', methods=['POST'])
@require_login
@require_tenant
def create_customer_view():
    customer = create_customer(get_session(), g.tenant_id, get_json_body(), user_id=g.user.id)
    return jsonify(customer.to_dict()), 201


@customers_bp.route('/stats', methods=['GET'])
@require_login
@require_tenant
def customer_stats_view():
    """Customer counts per status, quote and job counts, revenue booked in jobs."""
    stats = get_customer_stats(get_session(), g.tenant_id)
    return jsonify({
        key: money_json(value) if isinstance(value, Decimal) else value
        for key, value in stats.items()
    })


@customers_bp.route('/<int:customer_id>', methods=['GET'])
@require_login
@require_tenant
def get_customer_view(customer_id):
    return jsonify(get_customer(get_session(), g.tenant_id, customer_id).to_dict())


@customers_bp.route('/<int:customer_id>', methods=['PUT'])
@require_login
@require_tenant
def update_customer_view(customer_id):
    customer = update_customer(get_session(), g.tenant_id, customer_id, get_json_body(), user_id=g.user.id)
    return jsonify(customer.to_dict())


@customers_bp.route('/<int:customer_id>', methods=['DELETE'])
@require_login
@require_tenant
def delete_customer_view(customer_id):
    """Delete a customer; refused with 409 while quotes or jobs reference it."""
    delete_customer(get_session(), g.tenant_id, customer_id, user_id=g.user.id)
    return jsonify({'status': 'ok', 'message': 'Customer deleted'})
