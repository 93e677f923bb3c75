import os

# Must be set before `app` is imported: the module configures the database at import time.
os.environ['DATABASE_URL'] = 'sqlite://'

import pytest

from app import app as flask_app
from models import db


@pytest.fixture
def client():
    flask_app.config['TESTING'] = True
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    with flask_app.test_client() as test_client:
        yield test_client
