"""Articles: the full generic CRUD set plus a publish action.

Reading is public; writing requires a signed-in caller holding the matching
permission.
"""

from collections.abc import Mapping
from typing import Any

from starlette.datastructures import UploadFile

from core.exceptions import ResourceNotFound
from core.request import ServiceRequest
from core.responses import BaseResponse
from services.base import action
from services.generics import UniversalGenericService


class ArticleService(UniversalGenericService):
    table = "articles"
    list_columns = ["id", "title", "slug", "body", "author_email", "published"]
    create_columns = ["title", "slug", "body", "author_email"]
    update_columns = ["title", "slug", "body"]

    actions_requiring_auth = ["create", "update", "delete", "publish"]
    action_permissions = {
        "create": "create_article",
        "update": "update_article",
        "delete": ["delete_article"],
        "publish": ["update_article", "publish_article"],
    }

    async def create(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        self.validator.as_slug(data.get("slug"))
        if data.get("author_email") is not None:
            self.validator.as_email(data["author_email"])
        return await super().create(data, files, request)

    async def update(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        if "slug" in data:
            self.validator.as_slug(data["slug"])
        return await super().update(data, files, request)

    @action
    async def publish(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        pk = self.get_pk(data)
        row = await self.repository.update(pk, {"published": True}, self.list_columns)
        if row is None:
            raise ResourceNotFound(f"Article with id {pk} not found")
        return BaseResponse.json_response(message="Article published", payload=row)
