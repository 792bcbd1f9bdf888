from datetime import date, datetime

import pytest

from app import create_app
from config import Config
from models import db
from models.court import Court
from models.user import Role, User
from security.csrf import CSRF_COOKIE, CSRF_HEADER
from security.session import create_session
from utils.seed import seed_roles

# Monday; the fixture dates below are all within a player's advance window
NOW = datetime(2026, 10, 19, 9, 0)
TUESDAY = date(2026, 10, 20)
FRIDAY = date(2026, 10, 23)
SATURDAY = date(2026, 10, 24)
SUNDAY = date(2026, 10, 25)

BANDS = [
    {"start_time": "00:00", "end_time": "06:00", "price": 50, "name": "night"},
    {"start_time": "06:00", "end_time": "18:00", "price": 100, "name": "day"},
    {"start_time": "18:00", "end_time": "24:00", "price": 150, "name": "peak"},
]


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SEED_ROLES_ON_STARTUP = False
    DEFAULT_WEEKEND_DAYS = [0, 6]
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_court(app):
    def _make(number, **overrides):
        fields = {
            "name": f"Court {number}",
            "number": number,
            "type": "competition",
            "capacity": 4,
            "time_slots": list(BANDS),
            "member_discount": 10,
        }
        fields.update(overrides)
        court = Court(**fields)
        db.session.add(court)
        db.session.commit()
        return court
    return _make


@pytest.fixture
def court(make_court):
    return make_court(1)


@pytest.fixture
def make_user(app):
    def _make(email, roles=("PLAYER",), membership_level="basic"):
        user = User(email=email, full_name=email.split("@")[0], membership_level=membership_level)
        for name in roles:
            user.roles.append(Role.query.filter_by(name=name).one())
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def player(make_user):
    return make_user("player@example.com")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", roles=("ADMIN",))


def _login(app, user):
    client = app.test_client()
    with app.test_request_context():
        token = create_session(user.id)
    client.set_cookie(app.config["AUTH_COOKIE_NAME"], token)
    client.set_cookie(CSRF_COOKIE, "test-csrf")
    client.environ_base["HTTP_" + CSRF_HEADER.upper().replace("-", "_")] = "test-csrf"
    return client


@pytest.fixture
def player_client(app, player):
    return _login(app, player)


@pytest.fixture
def admin_client(app, admin):
    return _login(app, admin)
