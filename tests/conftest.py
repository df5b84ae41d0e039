import pytest

from app import create_app
from models.models import db
from seed import parse_movies_file, seed


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SEARCH_RESULTS_LIMIT": 50,
        }
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def data_manager(app):
    return app.data_manager


@pytest.fixture
def seeded(app):
    seed(app.data_manager, parse_movies_file())
    return app


@pytest.fixture
def client(seeded):
    return seeded.test_client()
