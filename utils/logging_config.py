import logging
import logging.config
import os
from pathlib import Path

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Third-party loggers that are too chatty at the application level
QUIET_LOGGERS = {
    'sqlalchemy.engine': 'WARNING',
    'werkzeug': 'INFO',
    'flask_limiter': 'WARNING',
}

def _rotating(path: Path, level: str, formatter: str = 'detailed') -> dict:
    return {
        'class': 'logging.handlers.RotatingFileHandler',
        'level': level,
        'formatter': formatter,
        'filename': str(path),
        'maxBytes': MAX_LOG_BYTES,
        'backupCount': LOG_BACKUPS,
        'encoding': 'utf-8',
    }

def setup_logging(name='curriculum', log_level=None, log_dir=None):
    """Install console and rotating file handlers for the service.

    Everything goes to <log_dir>/<name>.log, errors additionally to
    error_<name>.log, and the one-line API request log to api.log.
    """
    level = (log_level or os.environ.get('LOG_LEVEL') or 'INFO').upper()
    log_dir = Path(log_dir or os.environ.get('LOG_DIR') or 'logs')
    log_dir.mkdir(parents=True, exist_ok=True)

    loggers = {logger_name: {'level': lib_level} for logger_name, lib_level in QUIET_LOGGERS.items()}
    loggers['utils.api_logger'] = {
        'handlers': ['console', 'api_file', 'error_file'],
        'level': 'INFO',
        'propagate': False,
    }

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {'format': '%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s'},
            'basic': {'format': '%(levelname)s - %(message)s'},
            'request': {'format': '%(asctime)s %(message)s', 'datefmt': '%H:%M:%S'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': 'basic',
                'stream': 'ext://sys.stdout',
            },
            'file': _rotating(log_dir / f'{name}.log', 'DEBUG'),
            'error_file': _rotating(log_dir / f'error_{name}.log', 'ERROR'),
            'api_file': _rotating(log_dir / 'api.log', 'INFO', formatter='request'),
        },
        'root': {
            'handlers': ['console', 'file', 'error_file'],
            'level': level,
        },
        'loggers': loggers,
    })

    return logging.getLogger(name)
