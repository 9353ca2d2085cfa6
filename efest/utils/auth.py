# utils/auth.py
from functools import wraps

from flask import jsonify
from flask_login import current_user


def role_required(*roles):
    """Decorator to require specific role(s)."""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'error': 'Authentication required'}), 401

            if not current_user.has_any_role(roles):
                return jsonify({'error': f'Role required: {", ".join(roles)}'}), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def authenticated_required(f):
    """Decorator that allows any identified caller."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'error': 'Authentication required'}), 401

        return f(*args, **kwargs)

    return decorated_function


def current_user_id():
    """Id of the calling user, or None for anonymous requests."""
    return current_user.id if current_user.is_authenticated else None
