"""Base class every service extends.

A service groups related actions. Actions are methods marked with
``@action``; at class creation they are collected into ``cls.actions`` so
the dispatcher resolves them through an explicit registry. Mixins may
contribute actions too: anything in the MRO counts, and a subclass that
overrides a marked method without re-marking it still takes over the action.

Example:
    class ArticleService(Service):
        service_name = "article"
        actions_requiring_auth = ["publish"]
        action_permissions = {"publish": "publish_article"}

        @action
        async def publish(self, data, files, request):
            ...
            return BaseResponse.json_response(message="Published")
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ClassVar

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from core import auth
from core.auth import ContextUser
from core.request import ServiceRequest
from core.responses import BaseResponse
from core.validation import Validator

ActionHandler = Callable[
    [Mapping[str, Any], Mapping[str, UploadFile], ServiceRequest],
    Awaitable[BaseResponse | Any],
]

_ACTION_ATTR = "__service_action__"


def action(func: Callable | None = None, *, name: str | None = None):
    """Mark a method as a dispatchable action, optionally under another name."""

    def decorator(method: Callable) -> Callable:
        setattr(method, _ACTION_ATTR, name or method.__name__)
        return method

    if func is not None:
        return decorator(func)
    return decorator


def _default_service_name(class_name: str) -> str:
    """``ArticleService`` -> ``article``, ``BlogPostService`` -> ``blog_post``."""
    base = class_name.removesuffix("Service") or class_name
    return re.sub(r"(?<!^)(?=[A-Z])", "_", base).lower()


class Service:
    """Per-request service instance; holds no state across requests."""

    service_name: ClassVar[str] = ""

    # Actions unreachable through the dispatcher even though they exist
    deactivated_actions: ClassVar[list[str]] = []
    # action -> "perm" or ["perm_a", "perm_b"]; every listed permission is required
    action_permissions: ClassVar[dict[str, str | list[str]]] = {}
    actions_requiring_auth: ClassVar[list[str]] = []
    service_requires_auth: ClassVar[bool] = False
    # Used when service_requires_auth rejects a caller
    auth_message: ClassVar[str | None] = None

    actions: ClassVar[dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "service_name" not in cls.__dict__:
            cls.service_name = _default_service_name(cls.__name__)

        registry: dict[str, str] = {}
        for klass in reversed(cls.__mro__):
            for attr, value in vars(klass).items():
                action_name = getattr(value, _ACTION_ATTR, None)
                if action_name is not None:
                    registry[action_name] = attr
        cls.actions = registry

    def __init__(self, request: ServiceRequest, db: AsyncSession | None = None):
        self.request = request
        self.db = db
        self.validator = Validator()

    @property
    def user(self) -> ContextUser:
        return self.request.user

    def get_handler(self, action_name: str) -> ActionHandler | None:
        attr = self.actions.get(action_name)
        if attr is None:
            return None
        return getattr(self, attr)

    def must_authenticate(self, message: str | None = None) -> ContextUser:
        return auth.must_authenticate(self.user, message)

    def can(self, permission: str, message: str | None = None) -> bool:
        return auth.can(self.user, permission, message)

    def can_all(self, permissions: list[str], message: str | None = None) -> bool:
        return auth.can_all(self.user, permissions, message)
