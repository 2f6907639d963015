import os
import logging
from contextlib import contextmanager
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase

from utils.errors import IntegrityError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = 'sqlite:///curriculum.db'

class Base(DeclarativeBase):
    pass

# Initialize SQLAlchemy with the custom base class
db = SQLAlchemy(model_class=Base)

@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores foreign keys unless asked per connection"""
    if type(dbapi_connection).__module__.startswith('sqlite3'):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

def init_app(app):
    """Initialize database with application context"""
    try:
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', DEFAULT_DATABASE_URL)

        app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
        if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgresql'):
            app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', {
                'pool_size': 5,
                'pool_recycle': 1800,
                'pool_pre_ping': True
            })

        db.init_app(app)

        with app.app_context():
            # Import models so their tables are registered on the metadata
            import models  # noqa: F401
            db.create_all()
            logger.info("Database initialized successfully")

    except Exception as e:
        logger.error(f"Database initialization error: {str(e)}")
        raise

@contextmanager
def transaction_context(session=None):
    """Run the enclosed block as one unit of work.

    Commits when the block finishes and rolls back on any exception, so
    callers observe either the old or the new state. Driver failures are
    re-raised as IntegrityError; anything else propagates unchanged.
    """
    session = session or db.session
    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Transaction error: {str(e)}")
        raise IntegrityError(f"Transaction could not complete: {e.__class__.__name__}") from e
    except Exception as e:
        session.rollback()
        logger.error(f"Transaction error: {str(e)}")
        raise
