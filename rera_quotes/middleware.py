"""Middleware for request-scoped user context."""
from functools import wraps
from flask import session, g, jsonify, current_app
from rera_quotes.database import get_session
from rera_quotes.models import AppUser


def load_user():
    """
    Load the current user into g (Flask's per-request global).

    Called before each request. Sets g.user when session['user_id']
    points at an active user, otherwise g.user is None.
    """
    g.user = None

    try:
        user_id = session.get('user_id')
        if user_id:
            db_session = get_session()
            if not db_session:
                return

            user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
            if user:
                g.user = user
                g.user_id = user.id
            else:
                session.pop('user_id', None)
    except Exception as e:
        # A broken user lookup must not take the whole request down
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Returns a JSON 401 when there is no authenticated user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Authentication required'}), 401
        return f(*args, **kwargs)

    return decorated_function
