"""Flask extensions initialization"""
import logging
import os
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_compress import Compress
from flask_migrate import Migrate
from flask_cors import CORS

# Configure logging
logger = logging.getLogger('extensions')

# Initialize extensions
compress = Compress()
migrate = Migrate()
cors = CORS()

# Configure rate limiter with safe defaults
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    default_limits=["1000 per minute"],
    strategy="fixed-window"
)

def _cors_origins():
    origins = os.environ.get('CORS_ORIGINS', '*')
    if origins == '*':
        return '*'
    return [origin.strip() for origin in origins.split(',') if origin.strip()]

def init_extensions(app, db=None):
    """Initialize Flask extensions with proper error handling"""
    try:
        app.config.setdefault('RATELIMIT_ENABLED',
                              os.environ.get('RATELIMIT_ENABLED', 'true').lower() == 'true')
        app.config.setdefault('RATELIMIT_HEADERS_ENABLED', True)
        app.config.setdefault('RATELIMIT_STORAGE_URI', 'memory://')
        app.config.setdefault('COMPRESS_MIMETYPES', ['application/json', 'text/html'])

        try:
            compress.init_app(app)
            logger.info("Compression initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize compression: {str(e)}")
            raise

        try:
            limiter.init_app(app)
            logger.info("Rate limiter initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize rate limiter: {str(e)}")
            raise

        try:
            if db is not None:
                migrate.init_app(app, db)
                logger.info("Database migrations initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database migrations: {str(e)}")
            raise

        try:
            cors.init_app(app, resources={r"/api/*": {"origins": _cors_origins()}})
            logger.info("CORS initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize CORS: {str(e)}")
            raise

        logger.info("All extensions initialized successfully")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize extensions: {str(e)}")
        raise
