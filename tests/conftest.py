import os
import sys
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import extensions
from models import db
from models.item import Item
from models.supplier import Supplier
from models.user import User


@pytest.fixture(scope='session')
def app_instance():
    os.environ.setdefault('APP_ENV', 'testing')
    from app import create_app
    app = create_app()
    app.config.update(
        TESTING=True,
        SQLALCHEMY_DATABASE_URI='sqlite:///:memory:',
        SQLALCHEMY_TRACK_MODIFICATIONS=False
    )
    return app


@pytest.fixture(scope='function')
def app(app_instance):
    # counters are shared by every app built from the global limiter;
    # a disabled limiter never sets up storage, so there is nothing to reset
    if extensions.limiter.enabled:
        extensions.limiter.reset()
    with app_instance.app_context():
        db.drop_all()
        db.create_all()
        yield app_instance
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(username='admin', role='admin', password='secret123', is_active=True):
        user = User(username=username, role=role, is_active=is_active)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def auth_header(app):
    from app.utils import create_access_token

    def _header(user):
        return {'Authorization': f'Bearer {create_access_token(user.id, user.role)}'}
    return _header


@pytest.fixture
def make_item(app):
    def _make(name='Widget', category='Tools', quantity=10, reorder_level=5, price=2.0, **extra):
        item = Item(name=name, category=category, quantity=quantity,
                    reorder_level=reorder_level, price=price, **extra)
        db.session.add(item)
        db.session.commit()
        return item
    return _make


@pytest.fixture
def make_supplier(app):
    def _make(name='Acme', **extra):
        supplier = Supplier(name=name, **extra)
        db.session.add(supplier)
        db.session.commit()
        return supplier
    return _make
