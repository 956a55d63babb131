import pytest
from decimal import Decimal
import uuid

from storefront import create_app
from storefront.context import RequestContext
from storefront.database import create_all, drop_all, get_session
from storefront.models import User, Role, Product
from storefront.services import auth_service


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(autouse=True)
def app_context(app):
    """
    Fresh schema and an application context for every test.

    Requests made through the test client reuse this context, so the test
    and the request handlers share the same scoped session.
    """
    ctx = app.app_context()
    ctx.push()
    get_session().remove()
    drop_all()
    create_all()
    yield
    get_session().remove()
    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session shared with the request handlers."""
    session = get_session()
    yield session
    session.rollback()


def _make_user(session, role=Role.USER, password='password123'):
    suffix = str(uuid.uuid4())[:8]
    user = User(
        email=f'{role.value.lower()}-{suffix}@test.com',
        username=f'{role.value.lower()}_{suffix}',
        first_name='Test',
        last_name=role.value.title(),
        role=role,
        active=True
    )
    user.set_password(password)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def user(session):
    """Regular shopper."""
    return _make_user(session)


@pytest.fixture(scope='function')
def other_user(session):
    """A second shopper, for ownership checks."""
    return _make_user(session)


@pytest.fixture(scope='function')
def admin(session):
    return _make_user(session, role=Role.ADMIN)


@pytest.fixture(scope='function')
def make_product(session):
    """Factory: make_product(name, price, stock, category='Electronics', active=True)."""
    def _make(name='Test Product', price='10.00', stock=10, category='Electronics', active=True):
        product = Product(
            name=name,
            description=f'{name} description',
            price=Decimal(str(price)),
            stock=stock,
            category=category,
            active=active
        )
        session.add(product)
        session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def headphones(make_product):
    return make_product('Wireless Headphones', '99.99', 10, 'Electronics')


@pytest.fixture(scope='function')
def keyboard(make_product):
    return make_product('Mechanical Keyboard', '149.99', 5, 'Electronics')


@pytest.fixture(scope='function')
def yoga_mat(make_product):
    return make_product('Yoga Mat', '79.99', 1, 'Fitness')


@pytest.fixture(scope='function')
def user_ctx(user):
    return RequestContext(user_id=user.id, role=Role.USER)


@pytest.fixture(scope='function')
def other_ctx(other_user):
    return RequestContext(user_id=other_user.id, role=Role.USER)


@pytest.fixture(scope='function')
def admin_ctx(admin):
    return RequestContext(user_id=admin.id, role=Role.ADMIN)


@pytest.fixture(scope='function')
def guest_ctx():
    return RequestContext.anonymous('guest-session-1')


def bearer(user):
    """Authorization header for a user."""
    return {'Authorization': f'Bearer {auth_service.issue_token(user)}'}


@pytest.fixture(scope='function')
def user_headers(user):
    return bearer(user)


@pytest.fixture(scope='function')
def other_headers(other_user):
    return bearer(other_user)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture(scope='function')
def guest_headers():
    return {'X-Session-Id': 'guest-session-1'}


@pytest.fixture(scope='function')
def refetch(session):
    """Re-read an object from the database: refetch(product).stock"""
    def _refetch(obj):
        return session.get(type(obj), obj.id, populate_existing=True)
    return _refetch
