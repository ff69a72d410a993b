"""Caller identity, authentication backends, and authorization guards.

Provides:
- ContextUser: the explicit caller identity carried on every ServiceRequest
- Authentication backends that turn an HTTP request into a ContextUser
- must_authenticate / can / can_all guards raising framework exceptions

Backends are tried in order; the first one returning a user wins. When none
does, the caller is anonymous. Only the session backend ships by default;
applications append their own to ``app.state.auth_backends``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi import Request

from core.exceptions import UserUnauthenticated, UserUnauthorized
from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)


@dataclass(frozen=True)
class ContextUser:
    """Who is calling, and what they are allowed to do."""

    user_id: str | None = None
    permissions: frozenset[str] = frozenset()
    info: Mapping[str, Any] = field(default_factory=dict)

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def anonymous(cls) -> ContextUser:
        return cls()


ANONYMOUS = ContextUser.anonymous()


class AuthenticationBackend(Protocol):
    def authenticate(self, request: Request) -> ContextUser | None: ...


class SessionAuthenticationBackend:
    """Reads ``user_id`` and ``permissions`` from the signed session cookie.

    Requires Starlette's SessionMiddleware; a login flow elsewhere writes the
    session.
    """

    def authenticate(self, request: Request) -> ContextUser | None:
        session = request.scope.get("session") or {}
        user_id = session.get("user_id")
        if user_id is None:
            return None

        permissions = session.get("permissions") or []
        if isinstance(permissions, str):
            permissions = [permissions]
        return ContextUser(user_id=str(user_id), permissions=frozenset(permissions))


DEFAULT_BACKENDS: tuple[AuthenticationBackend, ...] = (SessionAuthenticationBackend(),)


def resolve_context_user(
    request: Request, backends: Sequence[AuthenticationBackend] | None = None
) -> ContextUser:
    """Run the authentication chain. Returns ANONYMOUS when nobody claims the request."""
    if backends is None:
        backends = getattr(request.app.state, "auth_backends", DEFAULT_BACKENDS)

    for backend in backends:
        user = backend.authenticate(request)
        if user is not None:
            request.state.user_id = user.user_id
            set_wide_event_fields(user_id=user.user_id)
            return user

    return ANONYMOUS


def get_context_user(request: Request) -> ContextUser:
    """FastAPI dependency wrapper around resolve_context_user."""
    return resolve_context_user(request)


def must_authenticate(
    user: ContextUser, message: str | None = None
) -> ContextUser:
    """Raises UserUnauthenticated unless a caller identity is attached."""
    if not user.authenticated:
        raise UserUnauthenticated(message)
    return user


def can(user: ContextUser, permission: str, message: str | None = None) -> bool:
    """Single-permission check. Anonymous callers are unauthenticated, not unauthorized."""
    return can_all(user, [permission], message)


def can_all(
    user: ContextUser, permissions: Iterable[str], message: str | None = None
) -> bool:
    """Every required permission must be held by the caller."""
    must_authenticate(user, message)

    missing = set(permissions) - user.permissions
    if missing:
        logger.info(
            "auth.permission.denied",
            user_id=user.user_id,
            missing=sorted(missing),
        )
        raise UserUnauthorized(message)
    return True
