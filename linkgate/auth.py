import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from linkgate import errors, models

logger = logging.getLogger(__name__)

TOKEN_LIFETIME = timedelta(hours=12)

# auto_error=False so a missing header reaches authenticate() as None
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Claims:
    id: int
    username: str
    role: models.Role
    issued_at: datetime
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role is models.Role.admin


class TokenService:
    """Signs and checks session tokens with the process-wide secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256",
                 clock: Callable[[], datetime] = _utcnow) -> None:
        if not secret_key:
            raise RuntimeError("SECRET_KEY is not set")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user: models.User) -> str:
        issued_at = int(self._clock().timestamp())
        payload = {
            "id": user.id,
            "username": user.username,
            "role": user.role,
            "iat": issued_at,
            "exp": issued_at + int(TOKEN_LIFETIME.total_seconds()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str | None) -> Claims:
        if not token:
            raise errors.MissingToken()
        try:
            # expiry is compared against our own clock below
            payload = jwt.decode(
                token, self._secret_key, algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
            claims = Claims(
                id=int(payload["id"]),
                username=str(payload["username"]),
                role=models.Role(payload["role"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (JWTError, KeyError, TypeError, ValueError):
            raise errors.InvalidToken()

        if self._clock() > claims.expires_at:
            raise errors.InvalidToken("Token expired")
        return claims


def authenticate(tokens: TokenService, token: str | None) -> Claims:
    return tokens.verify(token)


def authorize(claims: Claims, role: models.Role) -> Claims:
    if claims.role is not role:
        raise errors.AccessDenied()
    return claims


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_current_claims(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Claims:
    try:
        return authenticate(tokens, token)
    except errors.LinkGateError as exc:
        logger.warning("Auth failed (%s) on %s %s", exc.detail, request.method, request.url.path)
        raise


def require_admin(request: Request, claims: Claims = Depends(get_current_claims)) -> Claims:
    try:
        return authorize(claims, models.Role.admin)
    except errors.AccessDenied:
        logger.warning(
            "Access denied for user=%s role=%s on %s %s",
            claims.username, claims.role.value, request.method, request.url.path,
        )
        raise
