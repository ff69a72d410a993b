"""Generic CRUD services bound to a database table."""

from services.generics.base import GenericService, entity_name
from services.generics.mixins import (
    CreateMixin,
    DeleteMixin,
    ListMixin,
    RetrieveMixin,
    UpdateMixin,
)
from services.generics.services import (
    RetrieveCreateGenericService,
    RetrieveCreateUpdateGenericService,
    RetrieveDeleteGenericService,
    RetrieveListGenericService,
    RetrieveUpdateGenericService,
    UniversalGenericService,
)

__all__ = [
    "CreateMixin",
    "DeleteMixin",
    "GenericService",
    "ListMixin",
    "RetrieveCreateGenericService",
    "RetrieveCreateUpdateGenericService",
    "RetrieveDeleteGenericService",
    "RetrieveListGenericService",
    "RetrieveUpdateGenericService",
    "UniversalGenericService",
    "UpdateMixin",
    "entity_name",
]
