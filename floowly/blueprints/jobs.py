"""Jobs (calendar) API blueprint - Multi-Tenant."""
from decimal import Decimal

from flask import Blueprint, request, jsonify, g

from floowly.database import get_session
from floowly.middleware import require_login, require_tenant
from floowly.services.job_service import (
    parse_date,
    list_jobs,
    get_job,
    create_job,
    update_job,
    delete_job,
    get_job_stats
)
from floowly.utils.formatters import money_json
from floowly.utils.http import get_json_body

jobs_bp = Blueprint('jobs', __name__, url_prefix='/api/jobs')


@jobs_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_jobs_view():
    """List jobs (tenant-scoped) in calendar order; ?start_date=&end_date= select a window."""
    jobs = list_jobs(
        get_session(),
        g.tenant_id,
        search=request.args.get('search', '').strip() or None,
        status=request.args.get('status', '').strip() or None,
        customer_id=request.args.get('customer_id', type=int),
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(request.args.get('end_date'), 'end_date')
    )
    return jsonify([job.to_json() for job in jobs])


@jobs_bp.route('', methods=['POST'])
@require_login
@require_tenant
def create_job_view():
    job = create_job(get_session(), g.tenant_id, get_json_body(), user_id=g.user.id)
    return jsonify(job.to_json()), 201


@jobs_bp.route('/stats', methods=['GET'])
@require_login
@require_tenant
def job_stats_view():
    """Counts per status, total and completed value."""
    stats = get_job_stats(get_session(), g.tenant_id)
    return jsonify({
        key: money_json(value) if isinstance(value, Decimal) else value
        for key, value in stats.items()
    })


@jobs_bp.route('/<int:job_id>', methods=['GET'])
@require_login
@require_tenant
def get_job_view(job_id):
    return jsonify(get_job(get_session(), g.tenant_id, job_id).to_json())


@jobs_bp.route('/<int:job_id>', methods=['PUT'])
@require_login
@require_tenant
def update_job_view(job_id):
    job = update_job(get_session(), g.tenant_id, job_id, get_json_body(), user_id=g.user.id)
    return jsonify(job.to_json())


@jobs_bp.route('/<int:job_id>', methods=['DELETE'])
@require_login
@require_tenant
def delete_job_view(job_id):
    delete_job(get_session(), g.tenant_id, job_id, user_id=g.user.id)
    return jsonify({'status': 'ok', 'message': 'Job deleted'})
