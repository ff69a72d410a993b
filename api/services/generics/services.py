"""Ready-made combinations of the CRUD mixins.

All of them expect ``table`` to be set on the concrete subclass, and accept
``pk_field``, ``limit``, ``offset``, ``list_columns``, ``create_columns`` and
``update_columns`` overrides.
"""

from services.generics.base import GenericService
from services.generics.mixins import (
    CreateMixin,
    DeleteMixin,
    ListMixin,
    RetrieveMixin,
    UpdateMixin,
)


class RetrieveListGenericService(RetrieveMixin, ListMixin, GenericService):
    pass


class RetrieveCreateGenericService(RetrieveMixin, CreateMixin, GenericService):
    pass


class RetrieveDeleteGenericService(RetrieveMixin, DeleteMixin, GenericService):
    pass


class RetrieveUpdateGenericService(RetrieveMixin, UpdateMixin, GenericService):
    pass


class RetrieveCreateUpdateGenericService(
    RetrieveMixin, CreateMixin, UpdateMixin, GenericService
):
    pass


class UniversalGenericService(
    RetrieveMixin, ListMixin, CreateMixin, UpdateMixin, DeleteMixin, GenericService
):
    """Every CRUD action: list, retrieve, create, update, delete."""
