"""Middleware for authentication context."""
from functools import wraps
from flask import session, g, jsonify, current_app
from medisale.database import get_session
from medisale.models import AppUser


def load_current_user():
    """
    Load the authenticated staff member into g (Flask's per-request global).

    Called before each request. Sets g.user and g.user_id when the session
    carries the id of an active user.
    """
    g.user = None
    g.user_id = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return

            user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
            if user:
                g.user = user
                g.user_id = user.id  # Expose user_id directly for convenience
            else:
                # Stale or deactivated account, drop it from the session
                session.pop('user_id', None)
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_current_user: {e}")


def require_login(f):
    """
    Decorator: Require an authenticated staff member.

    Returns a JSON 401 for API calls without a valid session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({
                'status': 'error',
                'category': 'unauthorized',
                'message': 'Authentification requise'
            }), 401
        return f(*args, **kwargs)
    return decorated_function
