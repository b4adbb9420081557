import pytest
import uuid
from decimal import Decimal

from omahub import create_app
from omahub.database import db_session, get_session, create_all, drop_all
from omahub.models import (
    AppUser, Profile, Brand, Product, Basket, BasketItem, BasketStatus
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (in-memory SQLite)."""
    app = create_app('config.TestingConfig')
    return app


@pytest.fixture(scope='function', autouse=True)
def database(app):
    """Fresh schema for every test."""
    db_session.remove()
    create_all()
    yield
    db_session.remove()
    drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Database session shared with the app (same thread, same scoped session)."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def make_user(session):
    """Factory: user with (by default) a profile."""
    def _make_user(email=None, full_name='Ada Obi', phone='+234 800 000 0000',
                   address=None, with_profile=True, password='password123'):
        suffix = str(uuid.uuid4())[:8]
        user = AppUser(email=email or f'user-{suffix}@test.com', active=True)
        user.set_password(password)
        session.add(user)
        session.flush()

        if with_profile:
            session.add(Profile(
                id=user.id,
                full_name=full_name,
                phone=phone,
                address=address if address is not None else {'line1': '1 Marina', 'city': 'Lagos'}
            ))
        session.commit()
        return user
    return _make_user


@pytest.fixture(scope='function')
def make_brand(session):
    """Factory: brand, optionally owned by a user."""
    def _make_brand(name=None, owner=None, currency=None, location=None, price_range=None):
        brand = Brand(
            name=name or f'Brand {str(uuid.uuid4())[:6]}',
            user_id=owner.id if owner else None,
            currency=currency,
            location=location,
            price_range=price_range
        )
        session.add(brand)
        session.commit()
        return brand
    return _make_brand


@pytest.fixture(scope='function')
def make_product(session):
    """Factory: product of a brand (or of no brand)."""
    def _make_product(brand=None, title='Ankara Dress', price='10.00', sale_price=None):
        product = Product(
            brand_id=brand.id if brand else None,
            title=title,
            price=Decimal(price) if price is not None else None,
            sale_price=Decimal(sale_price) if sale_price is not None else None
        )
        session.add(product)
        session.commit()
        return product
    return _make_product


@pytest.fixture(scope='function')
def make_basket(session):
    """
    Factory: basket with items.

    `lines` is a list of (product, quantity) tuples; product may be None for an
    orphaned line.
    """
    def _make_basket(user, lines, status=BasketStatus.OPEN.value, price=None):
        basket = Basket(user_id=user.id, status=status)
        session.add(basket)
        session.flush()

        for product, quantity in lines:
            session.add(BasketItem(
                basket_id=basket.id,
                product_id=product.id if product else None,
                quantity=quantity,
                price=Decimal(price) if price is not None else (product.effective_price if product else None)
            ))
        session.commit()
        return basket
    return _make_basket


@pytest.fixture(scope='function')
def login(client):
    """Log a user in by writing the session cookie directly."""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
        return client
    return _login


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user(email='ada@test.com', full_name='Ada Obi')


@pytest.fixture(scope='function')
def auth_client(login, customer):
    """Client authenticated as `customer`."""
    return login(customer)
