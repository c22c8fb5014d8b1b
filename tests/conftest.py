import pytest
import uuid

from sqlalchemy.orm import sessionmaker

from floowly import create_app, database
from floowly.models import Tenant, AppUser, UserTenant, UserRole, Customer, CustomerStatus


def _persist(session, obj):
    """Commit obj and load its server-side defaults."""
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite unless TEST_DATABASE_URL is set)."""
    app = create_app('config.TestConfig')
    database.create_all()
    yield app
    database.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """
    Database session for fixtures and assertions.

    Kept apart from the request-scoped session, which every request and CLI
    call removes on teardown; objects created here stay attached and loadable.
    """
    session = sessionmaker(bind=database.engine)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def tenant1(session):
    """Create first test tenant."""
    suffix = str(uuid.uuid4())[:8]
    return _persist(session, Tenant(
        slug=f'test-tenant-1-{suffix}',
        name=f'Test Tenant 1 {suffix}',
        active=True
    ))


@pytest.fixture(scope='function')
def tenant2(session):
    """Create second test tenant for isolation tests."""
    suffix = str(uuid.uuid4())[:8]
    return _persist(session, Tenant(
        slug=f'test-tenant-2-{suffix}',
        name=f'Test Tenant 2 {suffix}',
        active=True
    ))


def _member(session, tenant, label):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(email=f'{label}-{suffix}@test.com', full_name=label.title(), active=True)
    session.add(user)
    session.flush()

    # Associate user with tenant
    session.add(UserTenant(
        user_id=user.id,
        tenant_id=tenant.id,
        role=UserRole.OWNER.value,
        active=True
    ))
    return _persist(session, user)


@pytest.fixture(scope='function')
def user1(session, tenant1):
    """Create test user owning tenant1."""
    return _member(session, tenant1, 'user1')


@pytest.fixture(scope='function')
def user2(session, tenant2):
    """Create test user owning tenant2."""
    return _member(session, tenant2, 'user2')


@pytest.fixture(scope='function')
def customer1(session, tenant1):
    """Customer of tenant1."""
    return _persist(session, Customer(
        tenant_id=tenant1.id,
        name='John Doe',
        company='Acme Corp',
        email='john@acme.com',
        status=CustomerStatus.ACTIVE.value
    ))


@pytest.fixture(scope='function')
def customer2(session, tenant2):
    """Customer of tenant2."""
    return _persist(session, Customer(
        tenant_id=tenant2.id,
        name='Jane Smith',
        company='Tech Solutions AB',
        status=CustomerStatus.PROSPECT.value
    ))


@pytest.fixture(scope='function')
def wrap_payload(customer1):
    """Quote payload of the demo wrap job: 25000.00 + 6250.00 tax = 31250.00."""
    return {
        'customer_id': customer1.id,
        'title': 'BMW X5 Full Wrap',
        'description': 'Complete vehicle wrap with matte black vinyl',
        'items': [
            {'name': 'Full Vehicle Wrap', 'quantity': 1, 'unit_price': 20000, 'tax_rate': 25},
            {'name': 'Design & Installation', 'quantity': 1, 'unit_price': 5000, 'tax_rate': 25},
        ],
        'hours': 16,
        'material_cost': 15000,
        'markup_percentage': 50,
    }


@pytest.fixture(scope='function')
def authenticated_client(client, user1, tenant1):
    """Create authenticated client for tenant1."""
    user_id, tenant_id = user1.id, tenant1.id
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
        sess['tenant_id'] = tenant_id
    return client


@pytest.fixture(scope='function')
def tenant2_client(app, user2, tenant2):
    """Second client, authenticated for tenant2."""
    client = app.test_client()
    user_id, tenant_id = user2.id, tenant2.id
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
        sess['tenant_id'] = tenant_id
    return client
