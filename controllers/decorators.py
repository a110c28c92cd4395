# controllers/decorators.py

from functools import wraps

from flask import g, request

from services.auth_service import AuthService


def token_required(f):
    """Authenticate the bearer token and expose the user as ``g.current_user``."""
    @wraps(f)
    def decorated(*args, **kwargs):
        g.current_user = AuthService.authenticate(request.headers.get('Authorization'))
        return f(*args, **kwargs)
    return decorated
