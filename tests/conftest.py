import os
import pytest
from flask import g
from flask.testing import FlaskClient

# Config() requires a secret; set it before the app factory reads the env
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'

from vaultshare import create_app, db
from vaultshare.models import Vault, VaultMember, ROLE_OWNER

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SHARE_PASSCODE_PEPPER': 'test-pepper',
    # keep Argon2 cheap in tests
    'PASSCODE_HASH_TIME_COST': 1,
    'PASSCODE_HASH_MEMORY_COST': 1024,
    'MAIL_SERVER': None,
    'AUDIT_LOG_DIR': None,
    'SCHEDULER_ENABLED': False,
}


@pytest.fixture
def app():
    """Create and configure a test app."""
    app = create_app(test_config=dict(TEST_CONFIG))

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


class IdentityClient(FlaskClient):
    """Test client that resolves the caller from each request's own headers.

    The app fixture keeps one app context pushed for the whole test and Flask
    reuses it for every request, so the user Flask-Login cached in ``g`` by an
    earlier request has to be dropped first.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture
def client(app):
    """A test client for the app."""
    app.test_client_class = IdentityClient
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def auth_headers(user_id, email=None):
    """Headers the identity provider forwards for an authenticated subject."""
    headers = {'X-User-Id': user_id}
    if email:
        headers['X-User-Email'] = email
    return headers


def make_vault(owner_id, name='Vault', vault_type='family', members=None):
    """Create a vault directly; ``members`` maps user_id -> role."""
    vault = Vault(name=name, type=vault_type, owner_id=owner_id)
    db.session.add(vault)
    db.session.flush()
    if vault_type != 'personal':
        db.session.add(VaultMember(vault_id=vault.id, user_id=owner_id, role=ROLE_OWNER))
    for user_id, role in (members or {}).items():
        db.session.add(VaultMember(vault_id=vault.id, user_id=user_id, role=role))
    db.session.commit()
    return vault


@pytest.fixture
def family_vault(app):
    """Family vault owned by alice with bob (edit) and carol (view)."""
    return make_vault('alice', name='Family', vault_type='family',
                      members={'bob': 'edit', 'carol': 'view'})


@pytest.fixture
def personal_vault(app):
    return make_vault('alice', name='Mine', vault_type='personal')
