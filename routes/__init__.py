from flask import current_app, request

from utils.errors import ValidationError

def get_store():
    """The CurriculumStore built by the app factory"""
    return current_app.extensions['curriculum_store']

def json_body():
    """Request JSON as a dict, or a ValidationError"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data

def no_cache(response):
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response

from .navigation_routes import navigation  # noqa: E402
from .curriculum_routes import curriculum  # noqa: E402
from .database_routes import database_admin  # noqa: E402

# Export blueprints list
blueprints = [navigation, curriculum, database_admin]
