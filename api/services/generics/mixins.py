"""CRUD actions that can be mixed into any GenericService.

Each mixin contributes exactly one action and relies on the table binding
of GenericService. Mix them in before GenericService:

    class ArticleService(ListMixin, RetrieveMixin, GenericService):
        table = "articles"

Override a method in the concrete service to change its behaviour; the
action stays registered under the same name.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from starlette.datastructures import UploadFile

from core.exceptions import InvalidData, ResourceNotFound
from core.logger import get_logger
from core.request import ServiceRequest
from core.responses import BaseResponse
from services.base import action
from services.generics.base import DATA_ERRORS

if TYPE_CHECKING:
    from services.generics.base import GenericService

    _Base = GenericService
else:
    _Base = object

logger = get_logger(__name__)


class ListMixin(_Base):
    @action
    async def list(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        limit, offset = self.get_pagination(data)
        rows = await self.repository.list(
            limit=limit, offset=offset, columns=self.list_columns
        )
        total = await self.repository.count()
        return BaseResponse.json_response(
            message=f"{self.entity} list",
            payload=rows,
            extra={
                "limit": limit,
                "offset": offset,
                "count": len(rows),
                "total": total,
            },
        )


class RetrieveMixin(_Base):
    @action
    async def retrieve(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        pk = self.get_pk(data)
        try:
            row = await self.repository.get(pk, self.list_columns)
        except DATA_ERRORS as e:
            raise InvalidData(f"Invalid {self.pk_field}: {e.orig}") from e
        if row is None:
            raise ResourceNotFound(f"{self.entity} with {self.pk_field} {pk} not found")
        return BaseResponse.json_response(
            message=f"{self.entity} retrieved successfully", payload=row
        )


class CreateMixin(_Base):
    @action
    async def create(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        values = self.writable_values(data, self.create_columns)
        try:
            row = await self.repository.create(values, self.list_columns)
        except DATA_ERRORS as e:
            logger.info("generic.create.rejected", table=self.table, error=str(e.orig))
            raise InvalidData(f"Could not create {self.entity.lower()}: {e.orig}") from e
        return BaseResponse.json_response(
            message=f"{self.entity} created successfully", payload=row
        )


class UpdateMixin(_Base):
    @action
    async def update(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        pk = self.get_pk(data)
        values = self.writable_values(
            data, self.update_columns, exclude=(self.pk_field,)
        )
        try:
            row = await self.repository.update(pk, values, self.list_columns)
        except DATA_ERRORS as e:
            logger.info("generic.update.rejected", table=self.table, error=str(e.orig))
            raise InvalidData(f"Could not update {self.entity.lower()}: {e.orig}") from e
        if row is None:
            raise ResourceNotFound(f"{self.entity} with {self.pk_field} {pk} not found")
        return BaseResponse.json_response(
            message=f"{self.entity} updated successfully", payload=row
        )


class DeleteMixin(_Base):
    @action
    async def delete(
        self,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile],
        request: ServiceRequest,
    ) -> BaseResponse:
        pk = self.get_pk(data)
        try:
            deleted = await self.repository.delete(pk)
        except DATA_ERRORS as e:
            raise InvalidData(f"Invalid {self.pk_field}: {e.orig}") from e
        if not deleted:
            raise ResourceNotFound(f"{self.entity} with {self.pk_field} {pk} not found")
        return BaseResponse.json_response(message=f"{self.entity} deleted successfully")
