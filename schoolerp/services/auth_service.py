"""
Authentication service
"""

from datetime import datetime, timedelta
from typing import Optional

import jwt
from flask import current_app, g, request, session

from schoolerp.models import db, User
from schoolerp.utils.validators import validate_email
from schoolerp.utils.exceptions import ValidationError, AuthenticationError
from schoolerp.utils.helpers import log_info


class AuthService:
    """Authentication service class"""

    @staticmethod
    def authenticate_user(email: str, password: str) -> User:
        """
        Authenticate a user and open a session

        Args:
            email: User email
            password: User password

        Returns:
            The authenticated user
        """
        email = (email or '').strip().lower()
        if not validate_email(email):
            raise ValidationError("Invalid email format")
        if not password:
            raise ValidationError("Password is required")

        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is disabled. Please contact the administrator.")

        user.last_login_at = datetime.utcnow()
        db.session.commit()

        session.clear()
        session['user_id'] = user.id
        session.permanent = True
        g.current_user = user

        log_info(f"User {user.email} logged in")
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        """Sign a bearer token for the user"""
        minutes = current_app.config.get('JWT_EXPIRES_MIN', 60 * 12)
        payload = {
            'uid': user.id,
            'exp': datetime.utcnow() + timedelta(minutes=minutes),
        }
        return jwt.encode(payload, AuthService._secret(), algorithm='HS256')

    @staticmethod
    def decode_token(token: str) -> int:
        """Return the user id of a bearer token"""
        try:
            payload = jwt.decode(token, AuthService._secret(), algorithms=['HS256'])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")
        uid = payload.get('uid')
        if not isinstance(uid, int):
            raise AuthenticationError("Invalid token")
        return uid

    @staticmethod
    def logout_user() -> None:
        """Logout current user"""
        session.clear()
        g.pop('current_user', None)

    @staticmethod
    def get_current_user() -> Optional[User]:
        """Resolve the user from the bearer token, falling back to the session"""
        if 'current_user' in g:
            return g.current_user

        user_id = None
        header = request.headers.get('Authorization', '')
        if header.startswith('Bearer '):
            user_id = AuthService.decode_token(header[len('Bearer '):].strip())
        elif 'user_id' in session:
            user_id = session['user_id']

        user = db.session.get(User, user_id) if user_id else None
        if user is not None and not user.is_active:
            user = None
        g.current_user = user
        return user

    @staticmethod
    def require_auth() -> User:
        """Require authentication - raise exception if not authenticated"""
        user = AuthService.get_current_user()
        if not user:
            raise AuthenticationError("Authentication required")
        return user

    @staticmethod
    def _secret() -> str:
        return current_app.config.get('JWT_SECRET') or current_app.config['SECRET_KEY']
