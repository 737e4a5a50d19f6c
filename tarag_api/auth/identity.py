import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, Request
from jose import JWTError, jwt

from tarag_api.errors import AuthError

logger = logging.getLogger(__name__)


class TokenIdentityResolver:
    """Turns a bearer token into the id of the user it was issued to."""

    def __init__(self, secret: str, algorithm: str = "HS256", expire_minutes: int = 20160):
        self._secret = secret
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self._expire_minutes))
        return jwt.encode({"userId": user_id, "exp": expire}, self._secret, algorithm=self._algorithm)

    def resolve(self, token: Optional[str]) -> str:
        if not token:
            raise AuthError("Access denied. No token provided.")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError:
            raise AuthError("Invalid or expired token")

        user_id = payload.get("userId")
        if not user_id:
            raise AuthError("Invalid token: userId not found")
        return str(user_id)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user_id(request: Request, authorization: Optional[str] = Header(None)) -> str:
    resolver: TokenIdentityResolver = request.app.state.identity_resolver
    try:
        return resolver.resolve(bearer_token(authorization))
    except AuthError as e:
        logger.warning(f"🔐 Rejected request to {request.url.path}: {e.message}")
        raise
