"""
Test configuration file that only loads during pytest execution.
"""
import pytest

from app import create_app
from database import db

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'RATELIMIT_ENABLED': False
}

@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()

@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()

@pytest.fixture
def store(app):
    """The curriculum store wired into the app."""
    return app.extensions['curriculum_store']

@pytest.fixture
def hierarchy(store):
    """Grade 1 -> Math -> "Unit Plans" with its seeded sample row."""
    tab = store.create_tab('Grade 1', 'Grade 1', order=1)
    dropdown = store.create_dropdown_item(tab.id, 'Math')
    config = store.create_table_config(tab.id, dropdown.id, 'Unit Plans')
    return tab, dropdown, config
