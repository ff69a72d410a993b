"""Routes a ServiceRequest to the matching action of a registered service.

Checks, in order:
1. the payload names a known service
2. the payload names an action
3. service-wide authentication
4. deactivated actions
5. per-action authentication
6. the action is registered on the service
7. per-action permissions (a string or a list; every permission must hold)

Then the handler runs with ``(data, files, request)`` and its response is
returned unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import can, can_all, must_authenticate
from core.exceptions import ResourceNotFound
from core.logger import bind_contextvars, get_logger
from core.request import ServiceRequest
from core.responses import BaseResponse
from core.wide_event import set_wide_event_fields
from services.base import Service

logger = get_logger(__name__)


class ServiceRegistry:
    """Maps service names (as sent by clients) to service classes."""

    def __init__(self, services: Iterable[type[Service]] = ()):
        self._services: dict[str, type[Service]] = {}
        for service in services:
            self.register(service)

    def register(
        self, service: type[Service], name: str | None = None
    ) -> type[Service]:
        key = name or service.service_name
        existing = self._services.get(key)
        if existing is not None and existing is not service:
            raise ValueError(
                f"Service name '{key}' already registered to {existing.__name__}"
            )
        self._services[key] = service
        return service

    def get(self, name: str) -> type[Service] | None:
        return self._services.get(name)

    def names(self) -> list[str]:
        return sorted(self._services)

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __len__(self) -> int:
        return len(self._services)


class ActionDispatcher:
    """Stateless apart from its registry; safe to share between requests."""

    def __init__(self, registry: ServiceRegistry):
        self.registry = registry

    def resolve_service(self, request: ServiceRequest) -> type[Service]:
        name = request.service
        if not name:
            raise ResourceNotFound("Service not defined in request data")

        service_cls = self.registry.get(name)
        if service_cls is None:
            raise ResourceNotFound(f"Service {name} not found")
        return service_cls

    async def dispatch(
        self, request: ServiceRequest, db: AsyncSession | None = None
    ) -> BaseResponse:
        service_cls = self.resolve_service(request)
        service_name = request.service
        action_name = request.action

        bind_contextvars(service=service_name, action=action_name)
        set_wide_event_fields(service=service_name, action=action_name)

        if not action_name:
            raise ResourceNotFound(f"Action not defined for the {service_name} service")

        user = request.user

        if service_cls.service_requires_auth:
            must_authenticate(
                user,
                service_cls.auth_message
                or f"Service {service_name} requires authentication",
            )

        if action_name in service_cls.deactivated_actions:
            raise ResourceNotFound(
                f"Action {action_name} is currently deactivated for this service"
            )

        if action_name in service_cls.actions_requiring_auth:
            must_authenticate(user, f"Action {action_name} requires authentication")

        service = service_cls(request, db)
        handler = service.get_handler(action_name)
        if handler is None:
            raise ResourceNotFound(
                f"Action {action_name} not found in the {service_name} context"
            )

        required = service_cls.action_permissions.get(action_name)
        if isinstance(required, str):
            can(user, required)
        elif required:
            can_all(user, required)

        result = await handler(request.data, request.files, request)
        response = (
            result
            if isinstance(result, BaseResponse)
            else BaseResponse.json_response(payload=result)
        )

        set_wide_event_fields(response_status=response.status)
        logger.debug("dispatch.completed", status=response.status)
        return response
