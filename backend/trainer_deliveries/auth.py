"""Bearer-token authentication.

Tokens are issued by the platform's auth service. This service only verifies
them and turns the claims into an :class:`Actor`.
"""
from dataclasses import dataclass
import logging
import time
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from .config import settings

logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer()

KNOWN_ROLES = ("trainer", "client", "manager", "coordinator")


@dataclass(frozen=True)
class Actor:
    """Authenticated caller: a user id and the platform role it signed in with."""

    id: UUID
    role: str

    @property
    def is_manager(self) -> bool:
        return self.role in settings.manager_roles


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(*, user_id: UUID, role: str, expires_in: int = 3600) -> str:
    """Create JWT access token (used by tests and local tooling)."""
    now = int(time.time())
    to_encode = {"sub": str(user_id), "role": role, "exp": now + expires_in, "iat": now, "type": "access"}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise _credentials_error()

    now = int(time.time())
    exp = payload.get("exp")
    if exp is None:
        raise _credentials_error()
    try:
        exp_int = int(exp)
    except (TypeError, ValueError):
        raise _credentials_error()
    if now > exp_int + int(settings.JWT_LEEWAY_SECONDS):
        raise _credentials_error("Token expired")

    iat = payload.get("iat")
    if iat is not None:
        try:
            iat_int = int(iat)
        except (TypeError, ValueError):
            raise _credentials_error()
        # Reject tokens issued far in the future (clock skew / malicious tokens).
        if iat_int > now + int(settings.JWT_LEEWAY_SECONDS):
            raise _credentials_error()
    return payload


def actor_from_payload(payload: dict) -> Actor:
    """Build an Actor from verified token claims."""
    if payload.get("type") != "access":
        raise _credentials_error("Invalid token type")

    sub = payload.get("sub")
    if not sub:
        raise _credentials_error()
    try:
        user_id = UUID(str(sub))
    except ValueError:
        raise _credentials_error()

    role = payload.get("role")
    if role not in KNOWN_ROLES:
        logger.warning("Rejected token with unknown role=%r sub=%s", role, user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unsupported role for deliveries",
        )
    return Actor(id=user_id, role=role)


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """Get current authenticated actor."""
    payload = decode_token(credentials.credentials)
    return actor_from_payload(payload)


class RoleChecker:
    """Require one of the given platform roles."""

    def __init__(self, *roles: str):
        self.roles = roles

    def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in self.roles and not actor.is_manager:
            required = " or ".join(self.roles) if self.roles else "manager"
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {required} role required",
            )
        return actor
