import logging
import os
from app import create_app

logger = logging.getLogger(__name__)

app = create_app()

if __name__ == '__main__':
    try:
        # Ensure the port is set and valid
        port = int(os.environ.get('PORT', 5000))
        logger.info(f"Starting Flask server on port {port}")

        app.run(
            host='0.0.0.0',
            port=port,
            debug=os.environ.get('FLASK_DEBUG', '0') == '1'
        )
    except Exception as e:
        logger.error(f"Failed to start Flask server: {e}", exc_info=True)
        raise
