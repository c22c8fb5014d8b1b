"""
Flask CLI commands.

Commands:
- flask init-db: Create all tables
- flask seed: Load the demo company, customers, quote and job
"""

from datetime import date, datetime, timedelta, timezone

import click
from floowly import database
from floowly.models import Tenant, AppUser, UserTenant, UserRole, Customer, CustomerStatus, Quote, Job, JobStatus

DEMO_TENANT_SLUG = 'default-company'
DEMO_ADMIN_EMAIL = 'admin@floowly.com'

DEMO_CUSTOMERS = [
    {
        'name': 'John Doe',
        'company': 'Acme Corp',
        'email': 'john@acme.com',
        'phone': '+46 70 123 4567',
        'address': 'Storgatan 1, 111 22 Stockholm, Sweden',
        'status': CustomerStatus.ACTIVE.value,
    },
    {
        'name': 'Jane Smith',
        'company': 'Tech Solutions AB',
        'email': 'jane@techsolutions.se',
        'phone': '+46 70 987 6543',
        'address': 'Teknikgatan 15, 412 58 Göteborg, Sweden',
        'status': CustomerStatus.PROSPECT.value,
    },
]

DEMO_QUOTE = {
    'title': 'BMW X5 Full Wrap',
    'description': 'Complete vehicle wrap with matte black vinyl',
    'items': [
        {'name': 'Full Vehicle Wrap', 'description': 'Matte black vinyl wrap', 'quantity': 1, 'unit_price': 20000, 'tax_rate': 25},
        {'name': 'Design & Installation', 'description': 'Custom design and professional installation', 'quantity': 1, 'unit_price': 5000, 'tax_rate': 25},
    ],
    'hours': 16,
    'material_cost': 15000,
    'markup_percentage': 50,
    'status': 'sent',
}

DEMO_JOB = {
    'title': 'BMW X5 Full Wrap',
    'description': 'Complete vehicle wrap with matte black vinyl',
    'start_time': '09:00',
    'end_time': '17:00',
    'hours': 40,
    'material_cost': 15000,
    'quoted_price': 31250,
    'status': JobStatus.CONFIRMED.value,
    'notes': 'Customer prefers matte finishes',
}


def seed_demo_data(session, valid_days=30):
    """
    Create the demo company, admin membership, customers, quote and the job
    booked from it (starting a week from today).

    Idempotent: existing rows (matched by slug, email, name, title) are reused.
    Returns the demo quote.
    """
    from floowly.services.customer_service import create_customer
    from floowly.services.quote_service import create_quote
    from floowly.services.job_service import create_job

    tenant = session.query(Tenant).filter_by(slug=DEMO_TENANT_SLUG).first()
    if not tenant:
        tenant = Tenant(slug=DEMO_TENANT_SLUG, name='Default Company', plan='professional')
        session.add(tenant)
        session.flush()

    admin = session.query(AppUser).filter_by(email=DEMO_ADMIN_EMAIL).first()
    if not admin:
        admin = AppUser(email=DEMO_ADMIN_EMAIL, full_name='Admin User')
        session.add(admin)
        session.flush()
        session.add(UserTenant(user_id=admin.id, tenant_id=tenant.id, role=UserRole.OWNER.value))
    session.commit()

    customers = []
    for data in DEMO_CUSTOMERS:
        customer = session.query(Customer).filter_by(tenant_id=tenant.id, name=data['name']).first()
        if not customer:
            customer = create_customer(session, tenant.id, data, user_id=admin.id)
        customers.append(customer)

    quote = session.query(Quote).filter_by(tenant_id=tenant.id, title=DEMO_QUOTE['title']).first()
    if not quote:
        payload = dict(
            DEMO_QUOTE,
            customer_id=customers[0].id,
            expires_at=(datetime.now(timezone.utc) + timedelta(days=valid_days)).isoformat()
        )
        quote = create_quote(session, tenant.id, payload, user_id=admin.id)

    job = session.query(Job).filter_by(tenant_id=tenant.id, title=DEMO_JOB['title']).first()
    if not job:
        start = date.today() + timedelta(days=7)
        create_job(session, tenant.id, dict(
            DEMO_JOB,
            customer_id=customers[0].id,
            quote_id=quote.id,
            start_date=start.isoformat(),
            end_date=(start + timedelta(days=5)).isoformat()
        ), user_id=admin.id)
    return quote


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        database.create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('seed')
    def seed_command():
        """Load demo data (company, admin user, customers, quote, job)."""
        session = database.get_session()
        try:
            quote = seed_demo_data(session, app.config.get('QUOTE_VALID_DAYS', 30))
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'Seeding failed: {e}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('Demo data loaded.', fg='green', bold=True))
        click.echo(f'   Quote: {quote.quote_number} ({quote.status})')
        click.echo(f'   Subtotal: {quote.subtotal}  Tax: {quote.tax_amount}  Total: {quote.total}')
