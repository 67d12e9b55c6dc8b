"""
Shared pytest fixtures for the Scopematter test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate, cache flush (autouse)
    - client: Flask test client (function-scoped)
    - cache: the app-scoped CacheService
    - user / other_user: active AppUsers
    - auth_headers / other_auth_headers: bearer headers for those users

ORM factories (``make_*``) commit, so rows they create are visible to the
API under test.
"""

from decimal import Decimal

import pytest

from scopematter import create_app
from scopematter.models import db as _db
from scopematter.models.auth import AppUser
from scopematter.models.change_order import ChangeOrder, Request
from scopematter.models.project import Client, Project, ScopeItem
from scopematter.models.wallet import Wallet
from scopematter.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        app.extensions["cache"].clear()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()
        app.extensions["cache"].clear()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def cache(app):
    return app.extensions["cache"]


# ── ORM factories ────────────────────────────────────────────────────────


def make_user(external_id="user_alice", email="alice@example.com", **kw) -> AppUser:
    user = AppUser(external_id=external_id, email=email, is_active=kw.pop("is_active", True), **kw)
    _db.session.add(user)
    _db.session.commit()
    return user


def make_project(user, name="Website Revamp", client_name="Acme", status="PENDING") -> Project:
    project = Project(user_id=user.id, name=name, description="Landing page + blog", status=status)
    project.client = Client(name=client_name, email="client@acme.com", company="Acme Corporation")
    _db.session.add(project)
    _db.session.commit()
    return project


def make_scope_item(project, name="Landing page", status="PENDING") -> ScopeItem:
    item = ScopeItem(project_id=project.id, name=name, description=f"{name} work", status=status)
    _db.session.add(item)
    _db.session.commit()
    return item


def make_request(project, description="Add CSV export", status="PENDING", created_at=None) -> Request:
    req = Request(project_id=project.id, description=description, status=status)
    if created_at is not None:
        req.created_at = created_at
    _db.session.add(req)
    _db.session.commit()
    return req


def make_change_order(project, request, price="300.00", extra_days=5, status="PENDING",
                      created_at=None) -> ChangeOrder:
    co = ChangeOrder(
        request_id=request.id,
        project_id=project.id,
        user_id=project.user_id,
        price_usd=Decimal(price),
        extra_days=extra_days,
        status=status,
    )
    if created_at is not None:
        co.created_at = created_at
        co.updated_at = created_at
    _db.session.add(co)
    _db.session.commit()
    return co


def make_wallet(user, address="0x" + "a" * 40, chain="ETH_MAINNET", is_primary=True) -> Wallet:
    wallet = Wallet(user_id=user.id, address=address, chain=chain, is_primary=is_primary)
    _db.session.add(wallet)
    _db.session.commit()
    return wallet


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {generate_access_token(user.external_id)}"}


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def user():
    return make_user()


@pytest.fixture()
def other_user():
    return make_user(external_id="user_bob", email="bob@example.com")


@pytest.fixture()
def auth_headers(user):
    return bearer(user)


@pytest.fixture()
def other_auth_headers(other_user):
    return bearer(other_user)


@pytest.fixture()
def project(user):
    return make_project(user)
