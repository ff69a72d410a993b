"""Generic service bound to one database table.

Subclasses set ``table`` (a table registered on Base.metadata) and mix in
the CRUD actions they want to expose. The column allowlists default to
every column of the table.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import cached_property
from typing import Any, ClassVar

from sqlalchemy.exc import StatementError

from core.config import get_settings
from core.exceptions import InvalidData
from core.request import ACTION_KEYS, SERVICE_KEYS
from core.validation import Validator
from repositories.table_repository import TableRepository, get_table
from services.base import Service

PAGING_KEYS = ("limit", "LIMIT", "offset", "OFFSET", "pagination", "PAGINATION")
RESERVED_KEYS = frozenset(SERVICE_KEYS + ACTION_KEYS + PAGING_KEYS)

# Errors raised while binding or storing caller-supplied values
DATA_ERRORS = (StatementError,)

# Bound parameters must fit a signed 64-bit integer
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

SCALAR_TYPES = (str, int, float, bool)

_lenient = Validator(throws=False)


def singularize(word: str) -> str:
    lowered = word.lower()
    if lowered.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lowered.endswith(("sses", "xes", "ches", "shes")):
        return word[:-2]
    if lowered.endswith("s") and not lowered.endswith("ss"):
        return word[:-1]
    return word


def entity_name(table: str) -> str:
    """``articles`` -> ``Article``, ``blog_categories`` -> ``Blog category``."""
    words = table.replace("-", "_").split("_")
    words[-1] = singularize(words[-1])
    return " ".join(words).capitalize()


class GenericService(Service):
    table: ClassVar[str | None] = None
    pk_field: ClassVar[str] = "id"
    # None falls back to DEFAULT_LIMIT / DEFAULT_OFFSET
    limit: ClassVar[int | None] = None
    offset: ClassVar[int | None] = None

    # Columns returned by list and retrieve
    list_columns: ClassVar[list[str] | None] = None
    # Columns a caller may set on create / update
    create_columns: ClassVar[list[str] | None] = None
    update_columns: ClassVar[list[str] | None] = None

    @cached_property
    def repository(self) -> TableRepository:
        if not self.table:
            raise LookupError(f"{type(self).__name__} does not define a table")
        if self.db is None:
            raise RuntimeError(f"{type(self).__name__} needs a database session")
        return TableRepository(self.db, get_table(self.table), self.pk_field)

    @property
    def entity(self) -> str:
        return entity_name(self.table or type(self).__name__)

    def get_pk(self, data: Mapping[str, Any]) -> Any:
        """Primary key from the payload, coerced to the column's Python type."""
        value = data.get(self.pk_field)
        if value is None or value == "":
            raise InvalidData(f"{self.pk_field} is required")

        invalid = InvalidData(f"Invalid {self.pk_field}: {value!r}")
        if isinstance(value, bool) or not isinstance(value, SCALAR_TYPES):
            raise invalid

        try:
            python_type = self.repository.pk_column.type.python_type
        except NotImplementedError:
            return value

        if python_type is int:
            # 1.0 is a whole number, 1.9 and "1.9" are not
            if isinstance(value, float):
                if not value.is_integer():
                    raise invalid
                value = int(value)
            elif not _lenient.as_numeric_int(value):
                raise invalid
            pk = int(value)
            if not INT64_MIN <= pk <= INT64_MAX:
                raise invalid
            return pk

        if isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError):
            raise invalid from None

    def get_pagination(self, data: Mapping[str, Any]) -> tuple[int, int]:
        """Resolve limit/offset from the payload, falling back to class then settings defaults."""
        settings = get_settings()
        nested = data.get("pagination") or data.get("PAGINATION") or {}
        if not isinstance(nested, Mapping):
            raise InvalidData("pagination must be an object")

        def pick(key: str, default: int) -> int:
            for source in (nested, data):
                for candidate in (key, key.upper()):
                    if source.get(candidate) is not None:
                        value = source[candidate]
                        if not _lenient.as_numeric_int(value):
                            raise InvalidData(f"{key} must be an integer")
                        if not INT64_MIN <= int(value) <= INT64_MAX:
                            raise InvalidData(f"{key} is out of range")
                        return int(value)
            return default

        limit = pick("limit", self.limit if self.limit is not None else settings.default_limit)
        offset = pick(
            "offset", self.offset if self.offset is not None else settings.default_offset
        )

        if limit < 1:
            raise InvalidData("limit must be at least 1")
        if offset < 0:
            raise InvalidData("offset cannot be negative")
        return min(limit, settings.max_limit), offset

    def writable_values(
        self,
        data: Mapping[str, Any],
        allowed: list[str] | None,
        *,
        exclude: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        """Keep only payload keys that are allowed, known columns.

        Values must be scalars (or null); integers must fit a 64-bit column.
        """
        columns = allowed if allowed is not None else self.repository.column_names
        permitted = set(columns) - RESERVED_KEYS - set(exclude)
        values = {key: value for key, value in data.items() if key in permitted}
        if not values:
            raise InvalidData(f"No valid fields provided for {self.entity.lower()}")

        for key, value in values.items():
            if value is not None and not isinstance(value, SCALAR_TYPES):
                raise InvalidData(f"{key} must be a single value")
            if (
                isinstance(value, int)
                and not isinstance(value, bool)
                and not INT64_MIN <= value <= INT64_MAX
            ):
                raise InvalidData(f"{key} is out of range")
        return values
