"""Request helpers shared by the API blueprints."""
from flask import request

from floowly.exceptions import ValidationError


def get_json_body():
    """Decoded JSON object of the request or ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data
