"""
Request logging for the JSON API
"""
import logging
import time
from typing import Optional

from flask import g, request

logger = logging.getLogger(__name__)

MAX_LOG_LINE = 80

def log_api_request(start_time: float, method: str, endpoint: str, status_code: int,
                    error: Optional[str] = None):
    """Log one API request as a single line"""
    duration = round((time.time() - start_time) * 1000, 2)  # Duration in milliseconds
    line = f"{method} {endpoint} {status_code} in {duration}ms"
    if error:
        line += f" :: {error}"
    if len(line) > MAX_LOG_LINE:
        line = line[:MAX_LOG_LINE - 1] + "…"
    if status_code >= 500:
        logger.error(line)
    else:
        logger.info(line)

def init_request_logging(app):
    """Time every /api request and log it once the response is ready"""

    @app.before_request
    def _start_timer():
        g.request_started = time.time()

    @app.after_request
    def _log_request(response):
        if request.path.startswith('/api'):
            started = g.get('request_started', time.time())
            error = None
            if response.status_code >= 400 and response.is_json:
                error = (response.get_json(silent=True) or {}).get('message')
            log_api_request(started, request.method, request.path, response.status_code, error)
        return response
