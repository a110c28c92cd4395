from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from app import create_app
from app.config import Config
from db.extensions import db
from models.game import Game, GAME_OPEN
from models.timeSlot import TimeSlot
from models.user import User
from models.venue import Venue, SubVenue
from services.utils import utcnow

from tests.helpers import JWT_SECRET, WEBHOOK_SECRET


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = 'no-reply@test.local'
    JWT_SECRET = JWT_SECRET
    STRIPE_SECRET_KEY = 'sk_test_dummy'
    STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    BYPASS_STRIPE_PAYMENT = False
    FRONTEND_URL = 'http://frontend.test'


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def fake_redis():
    with patch('services.webhook_service.redis_client') as client:
        client.exists.return_value = 0
        yield client


@pytest.fixture(autouse=True)
def mail_thread():
    with patch('services.notification_service.Thread') as thread:
        yield thread


@pytest.fixture
def stripe_create():
    """Stands in for stripe.checkout.Session.create and hands out sequential session ids."""
    counter = {'n': 0}

    def _create(**kwargs):
        counter['n'] += 1
        session_id = f"cs_test_{counter['n']}"
        return MagicMock(id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    with patch('stripe.checkout.Session.create', side_effect=_create) as create:
        yield create


@pytest.fixture
def users(app):
    created = [User(id=i, username=f"player{i}", email=f"player{i}@example.com") for i in range(1, 13)]
    db.session.add_all(created)
    db.session.commit()
    return created


@pytest.fixture
def venue(app):
    venue = Venue(id=1, name='Green Turf Arena', city='Pune', state='MH',
                  latitude=18.52, longitude=73.85)
    venue.sub_venues.append(SubVenue(
        id=1, name='Turf A',
        sports=[{'name': 'Cricket', 'available': True}, {'name': 'Football', 'available': False}],
    ))
    db.session.add(venue)
    db.session.commit()
    return venue


@pytest.fixture
def time_slot(venue):
    day = (utcnow() + timedelta(days=1)).date()
    ts = TimeSlot(id=1, sub_venue_id=1, date=day)
    ts.add_entry(datetime(day.year, day.month, day.day, 10), datetime(day.year, day.month, day.day, 11),
                 {'Cricket': 1000})
    ts.add_entry(datetime(day.year, day.month, day.day, 11), datetime(day.year, day.month, day.day, 12),
                 {'Cricket': 1200})
    db.session.add(ts)
    db.session.commit()
    return ts


@pytest.fixture
def slot(time_slot):
    return time_slot.slots[0]


@pytest.fixture
def make_game(users, slot):
    def _make(host_id=1, players_min=2, players_max=10, approved=None, **overrides):
        fields = dict(
            host_id=host_id,
            sport='Cricket',
            venue_id=1,
            sub_venue_id=1,
            latitude=18.52,
            longitude=73.85,
            city='Pune',
            state='MH',
            time_slot_id=slot.time_slot_id,
            slot_id=slot.id,
            slot_price=1000,
            start_time=slot.start_time,
            end_time=slot.end_time,
            players_min=players_min,
            players_max=players_max,
            approved_players=approved if approved is not None else [host_id],
            join_requests=[],
            status=GAME_OPEN,
        )
        fields.update(overrides)
        game = Game(**fields)
        db.session.add(game)
        db.session.commit()
        return game
    return _make
