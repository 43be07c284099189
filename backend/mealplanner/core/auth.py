"""Bearer JWT authentication for FastAPI."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt as pyjwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from mealplanner.core.config import get_settings

_bearer_scheme = HTTPBearer(auto_error=False)

ROLES = ("admin", "trainer", "customer")


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity extracted from a verified access token."""

    user_id: str
    role: str
    claims: dict

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(user_id: str, role: str, expires_in: timedelta | None = None) -> str:
    """Mint an access token for ``user_id``. Used by the auth service and tests."""
    settings = get_settings()
    now = datetime.now(UTC)
    expires_in = expires_in or timedelta(minutes=settings.jwt_access_token_minutes)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "nbf": now,
        "exp": now + expires_in,
    }
    return pyjwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AuthenticatedUser:
    """Verify and decode an access token.

    Raises ``HTTPException(401)`` on any validation failure.
    """
    settings = get_settings()
    try:
        payload = pyjwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.ImmatureSignatureError:
        raise HTTPException(status_code=401, detail="Token not yet valid (immature)")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    role = payload.get("role", "customer")
    if role not in ROLES:
        raise HTTPException(status_code=401, detail=f"Invalid role claim: {role}")

    return AuthenticatedUser(user_id=sub, role=role, claims=payload)


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency that extracts and validates the bearer token.

    Usage::

        @router.get("/protected")
        async def protected(user: AuthenticatedUser = Depends(require_auth)):
            ...
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    user = decode_access_token(credentials.credentials)

    # Set user_id on request state for downstream use (error handlers, audit logging)
    request.state.user_id = user.user_id

    return user


def require_role(*roles: str):
    """Create a dependency that admits only the given roles.

    Admins are not implied: trainer and customer routes act on the caller's own
    subscription and data, which an admin account does not have. Admin work
    goes through ``require_admin`` routes.
    """

    async def dependency(user: AuthenticatedUser = Depends(require_auth)) -> AuthenticatedUser:
        if user.role in roles:
            return user
        raise HTTPException(status_code=403, detail=f"Requires role: {', '.join(roles)}")

    return dependency


async def require_admin(user: AuthenticatedUser = Depends(require_auth)) -> AuthenticatedUser:
    """FastAPI dependency that requires admin privileges."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
