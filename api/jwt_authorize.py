"""
JWT authorization used across the API.

Identities come from a JSON Web Token, sent either as a bearer token in
the ``Authorization`` header or in the JWT cookie.  Flask-Login resolves
the token once per request through ``load_user_from_request`` so
``current_user`` works everywhere; ``token_required`` guards endpoints
and stores the user in Flask's global ``g`` object for downstream use.
On failure it returns a JSON error response with status 401.
"""

from functools import wraps

from flask import current_app, g, request
from flask_login import current_user

from app import login_manager
from social import accounts
from social.errors import Unauthenticated


def token_from_request(req=None):
    req = req or request
    header = req.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip()
    return req.cookies.get(current_app.config["JWT_TOKEN_NAME"])


@login_manager.request_loader
def load_user_from_request(req):
    token = token_from_request(req)
    if not token:
        return None
    try:
        return accounts.user_for_token(token)
    except Unauthenticated as exc:
        g.auth_error = exc.message
        return None


def token_required():
    """Decorator that requires a valid session token.

    Usage:

        @token_required()
        def handler(): ...

    The authenticated user is available as ``g.current_user``.
    """

    def decorator(func_to_guard):
        @wraps(func_to_guard)
        def decorated(*args, **kwargs):
            # CORS preflight requests should be allowed through
            if request.method == 'OPTIONS':
                return ('', 200)
            if not current_user or not current_user.is_authenticated:
                error = Unauthenticated(g.pop("auth_error", None) or "Authentication Token is missing!")
                return error.to_dict(), error.status
            g.current_user = current_user._get_current_object()
            return func_to_guard(*args, **kwargs)

        return decorated

    return decorator
