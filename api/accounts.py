from flask import Blueprint, current_app, g, make_response, request, jsonify
from flask_restful import Api, Resource
import logging

from api.jwt_authorize import token_required
from social import accounts
from social.errors import SocialError

accounts_api = Blueprint('accounts_api', __name__, url_prefix='/api/users')
api = Api(accounts_api)

logger = logging.getLogger(__name__)


def _token_response(user, status):
    token = accounts.issue_token(user)
    response = make_response(jsonify({'token': token, 'user': user.read()}), status)
    response.set_cookie(
        current_app.config.get('JWT_TOKEN_NAME', 'jwt'),
        token,
        max_age=int(current_app.config.get('JWT_EXPIRY_HOURS', 12)) * 3600,
        secure=request.is_secure,
        httponly=True,
        samesite='Lax',
    )
    return response


class Register(Resource):
    """Create an account and log it in"""

    def post(self):
        data = request.get_json(silent=True) or {}
        try:
            user = accounts.register(data.get('username'), data.get('email'), data.get('password'))
        except SocialError as e:
            return e.to_dict(), e.status
        return _token_response(user, 201)

    @token_required()
    def get(self):
        return g.current_user.read(), 200


class Login(Resource):
    """User login authentication"""

    def post(self):
        data = request.get_json(silent=True) or {}
        try:
            user = accounts.authenticate(data.get('username'), data.get('password'))
        except SocialError as e:
            logger.info(f"Login failed for username: {data.get('username')}")
            return e.to_dict(), e.status
        return _token_response(user, 200)


class RequestPasswordReset(Resource):
    def post(self):
        data = request.get_json(silent=True) or {}
        try:
            accounts.request_password_reset(data.get('email'))
        except SocialError as e:
            return e.to_dict(), e.status
        return {'message': 'Password reset link sent to email'}, 200


class ResetPassword(Resource):
    def post(self):
        data = request.get_json(silent=True) or {}
        try:
            accounts.reset_password(data.get('resetToken'), data.get('newPassword'))
        except SocialError as e:
            return e.to_dict(), e.status
        return {'message': 'Password reset successfully!'}, 200


# Register endpoints
api.add_resource(Register, '')
api.add_resource(Login, '/login')
api.add_resource(RequestPasswordReset, '/request-password-reset')
api.add_resource(ResetPassword, '/reset-password')
