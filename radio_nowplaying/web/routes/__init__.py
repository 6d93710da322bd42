"""
Route blueprints for Radio Now Playing

Helpers shared by the blueprints to reach the objects stored in app.config.
"""

from flask import current_app, request


def get_db():
    """Get database instance from Flask app config"""
    return current_app.config.get('db')


def get_dispatcher():
    """Get the StationDispatcher from Flask app config"""
    return current_app.config.get('dispatcher')


def get_settings():
    return current_app.config.get('settings') or {}


def get_json_body():
    """Request JSON body as a dict

    Returns:
        {} when there is no JSON body, None when the body is not an object
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def string_fields(data, *names):
    """Read text fields from a JSON body, stripped ('' when missing)

    Raises:
        ValueError: If a field is present but is not a string
    """
    values = []
    for name in names:
        value = data.get(name)
        if value is None:
            value = ''
        if not isinstance(value, str):
            raise ValueError(f"'{name}' must be a string")
        values.append(value.strip())
    return values
