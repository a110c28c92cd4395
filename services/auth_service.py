# services/auth_service.py

import jwt
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from db.extensions import db
from models.user import User
from services.exceptions import AuthenticationError, ConfigurationError, DependencyError

JWT_ALGORITHM = 'HS256'
USER_ID_CLAIM = 'userId'


class AuthService:
    """Resolves a bearer token into the requesting User."""

    @staticmethod
    def extract_token(auth_header):
        if not auth_header:
            raise AuthenticationError("Authorization header missing — token not provided.")

        scheme, _, token = auth_header.partition(' ')
        if scheme != 'Bearer':
            raise AuthenticationError("Invalid Authorization format — expected 'Bearer <token>'.")

        token = token.strip()
        if not token:
            raise AuthenticationError("Token is empty — please provide a valid token.")
        return token

    @staticmethod
    def decode_token(token):
        secret = current_app.config.get('JWT_SECRET')
        if not secret:
            raise ConfigurationError("JWT_SECRET is not set in environment variables")

        try:
            return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token verification failed — token has expired.")
        except jwt.ImmatureSignatureError:
            raise AuthenticationError("Token verification failed — token not yet active.")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Token verification failed — invalid or tampered token.")

    @staticmethod
    def authenticate(auth_header):
        token = AuthService.extract_token(auth_header)
        payload = AuthService.decode_token(token)

        user_id = payload.get(USER_ID_CLAIM)
        if user_id is None:
            raise AuthenticationError("Token verification failed — invalid or tampered token.")
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise AuthenticationError("Token verification failed — invalid or tampered token.")

        try:
            user = db.session.get(User, user_id)
        except SQLAlchemyError as e:
            current_app.logger.error(f"❌ User lookup failed during authentication: {str(e)}")
            raise DependencyError("Authentication failed — could not verify user.")

        if not user:
            current_app.logger.warning(f"⚠️  Token for unknown user {user_id}")
            raise AuthenticationError("Authentication failed — user not found or has been removed.")
        return user
