"""
Pytest fixtures for PDV backend tests.

Provides an in-memory database, a per-test table wipe, users of both
roles, a small catalog and a logged-in test client.
"""

import pytest

from pdv import create_app
from pdv.extensions import db
from pdv.models import UserRole
from pdv.repository import SqlAlchemyRepository
from pdv.services import auth_service, catalog_service

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'PDV_TIMEZONE': 'UTC',
}

TEST_SECRET = "1234"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def repository(db_session):
    return SqlAlchemyRepository()


@pytest.fixture(scope='function')
def admin_user(repository):
    return auth_service.create_user(repository, {
        'username': 'admin',
        'name': 'Administrador',
        'password': TEST_SECRET,
        'role': 'ADMIN',
    })


@pytest.fixture(scope='function')
def operator_user(repository):
    return auth_service.create_user(repository, {
        'username': 'caixa',
        'name': 'Caixa 1',
        'password': TEST_SECRET,
        'role': UserRole.OPERATOR,
    })


@pytest.fixture(scope='function')
def tradicional(repository):
    """25.00 bag of beans."""
    return catalog_service.create_product(repository, {
        'name': 'Tradicional',
        'category': 'Cafés em Grão',
        'price': '25.00',
    })


@pytest.fixture(scope='function')
def drip(repository):
    """4.50 drip sachet."""
    return catalog_service.create_product(repository, {
        'name': 'Drip Coffee',
        'category': 'Práticos',
        'price': '4.50',
    })


@pytest.fixture(scope='function')
def retired(repository):
    return catalog_service.create_product(repository, {
        'name': 'Edição Limitada',
        'category': 'Especiais',
        'price': '99.00',
        'is_active': False,
    })


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, 'admin', TEST_SECRET))


@pytest.fixture(scope='function')
def operator_headers(client, operator_user):
    return auth_headers(get_auth_token(client, 'caixa', TEST_SECRET))
