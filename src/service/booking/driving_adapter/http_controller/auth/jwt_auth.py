"""
Bearer token authentication (HS256, SECRET_KEY)

The user id is read from the `user_id` claim, falling back to `sub`.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import UnauthenticatedError


class JwtAuth:
    def __init__(self) -> None:
        self.secret = settings.SECRET_KEY.get_secret_value()
        self.algorithm = settings.ALGORITHM
        self.token_expire_days = 7

    def create_jwt_token(self, *, user_id: str, email: Optional[str] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': user_id,
            'user_id': user_id,
            'exp': now + timedelta(days=self.token_expire_days),
            'iat': now,
        }
        if email:
            payload['email'] = email
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError:
            raise UnauthenticatedError('Invalid token')

    def get_user_id_from_jwt(self, token: Optional[str]) -> str:
        if not token:
            raise UnauthenticatedError('Not authenticated')

        payload = self.decode_jwt_token(token)
        user_id = payload.get('user_id') or payload.get('sub')
        if not user_id:
            raise UnauthenticatedError('Invalid token')
        return str(user_id)
