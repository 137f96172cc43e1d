import pytest
import uuid
from decimal import Decimal

from sqlalchemy.orm import sessionmaker

from config import TestConfig
from rera_quotes import create_app
from rera_quotes.database import Base, create_all, get_engine
from rera_quotes.models import (
    AppUser, UserRole, DeveloperType, Region, PlotAreaRange, ServiceCategory, Service
)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application instance for testing, on a throwaway SQLite file."""
    db_path = tmp_path_factory.mktemp('db') / 'quotations-test.db'

    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f'sqlite:///{db_path}'

    app = create_app(_Config)
    create_all()
    return app


@pytest.fixture(autouse=True)
def _clean_tables(app):
    """Empty every table after each test."""
    yield
    with get_engine().begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope='function')
def app_ctx(app):
    """Application context for calling services directly (mail, config)."""
    with app.app_context():
        yield


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """
    Database session for testing.

    Separate from the request-scoped session the app uses, so requests made
    through the test client never close it.
    """
    session = sessionmaker(bind=get_engine(), autoflush=False)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def other_session(app):
    """A second, independent session (a concurrent approver)."""
    session = sessionmaker(bind=get_engine(), autoflush=False)()
    yield session
    session.rollback()
    session.close()


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@pytest.fixture(scope='function')
def developer_type(session):
    """Category 1 developer, +20%."""
    row = DeveloperType(name='Category 1', description='Large developers', multiplier=Decimal('1.2'))
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def agent_developer_type(session):
    """Agent registration: fixed pricing, its multiplier is never applied."""
    row = DeveloperType(name='Agent Registration', description='Real estate agents',
                        multiplier=Decimal('1.5'), is_agent_registration=True)
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def region(session):
    """Pune, +10%."""
    row = Region(name='Pune', state='Maharashtra', multiplier=Decimal('1.1'))
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def plot_area_ranges(session):
    """Two brackets: up to 5,000 sq ft (neutral) and above (+15%)."""
    small = PlotAreaRange(name='Up to 5,000 sq ft', min_area=Decimal('0'), max_area=Decimal('5000'),
                          multiplier=Decimal('1.0'))
    large = PlotAreaRange(name='Above 5,000 sq ft', min_area=Decimal('5000.01'), max_area=None,
                          multiplier=Decimal('1.15'))
    session.add_all([small, large])
    session.commit()
    return small, large


@pytest.fixture(scope='function')
def category(session):
    row = ServiceCategory(name='Registration', complexity_factor=Decimal('1.0'))
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def registration_service(session, category):
    """Mandatory service: 50,000 base, 66,000 for Category 1 in Pune."""
    row = Service(category_id=category.id, name='Project Registration',
                  base_price=Decimal('50000'), is_mandatory=True)
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def reports_service(session, category):
    """Optional service: 10,000 base, 13,200 for Category 1 in Pune."""
    row = Service(category_id=category.id, name='Quarterly Progress Reports',
                  base_price=Decimal('10000'), is_mandatory=False)
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def big_ticket(session, category):
    """Neutral developer type and one 1,000,000,001 service, for percentages near tier edges."""
    developer = DeveloperType(name='Neutral', multiplier=Decimal('1'))
    service = Service(category_id=category.id, name='Township Registration',
                      base_price=Decimal('1000000001'), is_mandatory=False)
    session.add_all([developer, service])
    session.commit()
    return {'developer_type_id': developer.id, 'service_id': service.id}


@pytest.fixture(scope='function')
def catalog(developer_type, region, registration_service, reports_service):
    """Everything needed to price a two-line quotation (79,200 undiscounted)."""
    return {
        'developer_type_id': developer_type.id,
        'region_id': region.id,
        'service_ids': [registration_service.id, reports_service.id],
        'registration_id': registration_service.id,
        'reports_id': reports_service.id,
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def _make_user(session, role, name):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'{role.value}-{suffix}@test.com',
        full_name=name,
        role=role,
        active=True
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def sales_user(session):
    return _make_user(session, UserRole.SALES, 'Sales Person')


@pytest.fixture(scope='function')
def manager(session):
    return _make_user(session, UserRole.MANAGER, 'Mira Manager')


@pytest.fixture(scope='function')
def senior_manager(session):
    return _make_user(session, UserRole.SENIOR_MANAGER, 'Sam Senior')


@pytest.fixture(scope='function')
def director(session):
    return _make_user(session, UserRole.DIRECTOR, 'Dana Director')


@pytest.fixture(scope='function')
def admin_user(session):
    return _make_user(session, UserRole.ADMIN, 'Ada Admin')


@pytest.fixture(scope='function')
def login_as(client):
    """Log the test client in as a given user."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login


@pytest.fixture(scope='function')
def authenticated_client(login_as, sales_user):
    """Test client logged in as the sales user."""
    return login_as(sales_user)
