import os
import sys
from datetime import datetime, timezone

import pytest
from flask import g

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from memogarden_app import create_app, db
from memogarden_app.config import Config
from memogarden_app.models import Card, Deck, User
from memogarden_app.modules.srs.schemas import CardState


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    HEALTH_SYNC_JOB_ENABLED = False
    LOG_LEVEL = 'WARNING'


NOW = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user_id):
    with client.session_transaction() as session:
        session['_user_id'] = str(user_id)
        session['_fresh'] = True
    # Requests share the fixture's app context, so drop the user Flask-Login cached there
    g.pop('_login_user', None)


@pytest.fixture
def make_user(app):
    def _make(username='learner', tz=None):
        user = User(username=username, timezone=tz)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_deck(app):
    def _make(user, name='Deck'):
        deck = Deck(user_id=user.user_id, name=name)
        db.session.add(deck)
        db.session.commit()
        return deck
    return _make


@pytest.fixture
def make_card(app):
    def _make(deck, **fields):
        fields.setdefault('front', 'front')
        fields.setdefault('back', 'back')
        fields.setdefault('due', NOW)
        fields.setdefault('state', CardState.NEW)
        card = Card(deck_id=deck.deck_id, **fields)
        db.session.add(card)
        db.session.commit()
        return card
    return _make
