import itertools

import pytest

from reviewhub import create_app
from reviewhub.config import TestingConfig
from reviewhub.extensions import db
from reviewhub.models import Broker, Customer, User
from reviewhub.models.user import hash_password
from reviewhub.services import CaptchaServiceUnavailable, ReviewCandidate, get_pipeline
from reviewhub.services.cache import MemoryCacheBackend

LONG_REVIEW = (
    "I opened an account with this broker in March after comparing spreads on gold and "
    "the main currency pairs. Verification took two days and the support chat answered "
    "every question in plain language. Deposits by bank transfer arrived the same afternoon, "
    "while my first withdrawal needed almost a week, which was frustrating because nobody "
    "explained the delay. The desktop platform is stable, charts load quickly and the "
    "mobile app mirrors it well. Overnight swap fees on indices felt slightly high compared "
    "to competitors, yet execution during the busy London open was consistent and slippage "
    "stayed small. Overall a solid choice for intermediate traders who value reliability."
)


class StubCaptcha:
    """Stands in for Turnstile: accepts everything except ``bad-token``."""

    def __init__(self):
        self.calls = []
        self.unavailable = False

    def verify(self, token, remote_ip=None):
        self.calls.append(token)
        if self.unavailable:
            raise CaptchaServiceUnavailable()
        return token != 'bad-token'


@pytest.fixture
def captcha():
    return StubCaptcha()


@pytest.fixture
def app(tmp_path, captcha):
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'reviews.db'}"

    app = create_app(Config, captcha=captcha, cache_backend=MemoryCacheBackend())

    # The app context below stays pushed for the whole test, so requests share
    # one ``g``; drop Flask-Login's per-request user cache as a fresh context would.
    @app.before_request
    def _reset_login_cache():
        from flask import g
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def pipeline(app):
    return get_pipeline()


@pytest.fixture
def broker(app):
    broker = Broker(name='Acme Markets', slug='acme-markets')
    db.session.add(broker)
    db.session.commit()
    return broker


@pytest.fixture
def other_broker(app):
    broker = Broker(name='Northwind FX', slug='northwind-fx')
    db.session.add(broker)
    db.session.commit()
    return broker


@pytest.fixture
def customers(app):
    people = [Customer(name=f'Trader {i}', email=f'trader{i}@example.com') for i in range(6)]
    db.session.add_all(people)
    db.session.commit()
    return people


@pytest.fixture
def customer(customers):
    return customers[0]


@pytest.fixture
def admin(app):
    user = User(username='moderator', email='moderator@example.com', password=hash_password('secret'))
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, user, auth_type):
    """Mimic the session the site's auth service hands out."""
    with client.session_transaction() as sess:
        sess['_user_id'] = str(user.id)
        sess['_fresh'] = True
        sess['auth_type'] = auth_type
    return client


@pytest.fixture
def customer_client(client, customer):
    return login(client, customer, 'customer')


@pytest.fixture
def admin_client(app, admin):
    return login(app.test_client(), admin, 'admin')


# Unrelated vocabularies, so none of these is a near-duplicate of another
REVIEW_TEXTS = [
    "Fast withdrawals and friendly support, spreads on euro dollar stayed tight all month.",
    "Platform crashed twice during news releases which cost me money on open positions.",
    "Educational webinars helped a beginner like me understand leverage plus margin calls.",
    "Customer service replied within minutes via chat, very polite, knowledgeable staff.",
    "High inactivity fee surprised me after six quiet months; read those terms carefully.",
    "Mobile application looks modern although charting tools lack several useful indicators.",
    "Account opening was painless; documents verified overnight without any extra requests.",
    "Commission structure seems fair for stocks, yet crypto pairs carry wide markups.",
]


@pytest.fixture
def submit(pipeline, broker, customers):
    """Submit through the pipeline; authors rotate so the per-broker limit stays out of the way."""
    authors = itertools.cycle(customers)

    def _submit(body, rating=5, author=None, broker_id=None, token='ok'):
        author = author or next(authors)
        return pipeline.submit_review(ReviewCandidate(
            broker_id=broker_id or broker.id,
            author_id=author.id,
            rating=rating,
            body_text=body,
            captcha_token=token,
        ))
    return _submit
