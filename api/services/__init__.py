"""Service layer: everything reachable through the dispatch endpoint.

Layer hierarchy:
    Routes (HTTP) -> ActionDispatcher -> Services (actions) -> Repositories (Database)

Services should:
- Contain the business rules and validation of their actions
- Raise core.exceptions errors instead of building error responses
- Return a BaseResponse (anything else is wrapped as a success payload)

Services should NOT:
- Directly execute SQL queries (use repositories)
- Know about HTTP request/response details
- Commit the session (the request dependency does)

New services are registered in build_registry() below; `python -m cli
make-service` scaffolds them.
"""

from services.article_service import ArticleService
from services.base import Service, action
from services.dispatcher import ActionDispatcher, ServiceRegistry


def build_registry() -> ServiceRegistry:
    return ServiceRegistry([ArticleService])


__all__ = [
    "ActionDispatcher",
    "ArticleService",
    "Service",
    "ServiceRegistry",
    "action",
    "build_registry",
]
