import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from app import create_app
from config import Config
from models import db
from models.facility import Facility
from models.user import User, Role
from security.password import hash_password
from services.bookings import BookingManager
from services.facilities import FacilityDirectory
from utils.locks import KeyedLocks

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test"
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        AUTO_CREATE_TABLES = True
        BCRYPT_ROUNDS = 4
        LOG_LEVEL = "WARNING"

    app = create_app(TestConfig)
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def make_user(app):
    def _make(email="player@example.com", roles=("USER",), full_name="Test Player", status="active"):
        with app.app_context():
            user = User(
                email=email,
                password_hash=hash_password(DEFAULT_PASSWORD, rounds=4),
                full_name=full_name,
                status=status,
            )
            user.roles = Role.query.filter(Role.name.in_(roles)).all()
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make


@pytest.fixture
def make_facility(app):
    def _make(owner_id, **overrides):
        values = dict(
            name="Smash Arena",
            sports=["Badminton", "Tennis"],
            category="Badminton",
            price_per_hour=Decimal("500"),
            address_line1="12 MG Road",
            city="Pune",
            state="MH",
            pincode="411001",
            courts=["Court 1", "Court 2"],
        )
        values.update(overrides)
        with app.app_context():
            facility = Facility(owner_id=owner_id, **values)
            db.session.add(facility)
            db.session.commit()
            return facility.id
    return _make


@pytest.fixture
def manager_at():
    """BookingManager bound to the current app context with a frozen clock."""
    locks = KeyedLocks()

    def _make(now):
        return BookingManager(
            db.session,
            FacilityDirectory(db.session),
            locks=locks,
            clock=lambda: now,
            cancel_cutoff=timedelta(hours=1),
        )
    return _make


@pytest.fixture
def login(app):
    """Returns a test client logged in as `email` with the CSRF header preset."""
    def _login(email, password=DEFAULT_PASSWORD):
        client = app.test_client()
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        token = client.get_cookie("csrf_token").value
        client.environ_base["HTTP_X_CSRF_TOKEN"] = token
        return client
    return _login
