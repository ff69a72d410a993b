"""Scaffolds a new service module.

Plain services get a single sample action; generic services are composed
from any subset of the CRUD mixins and bound to a table.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from codegen.base import CodeGenerator, snake_case

# Order matters: it is the MRO order of the generated class
MIXINS: dict[str, str] = {
    "retrieve": "RetrieveMixin",
    "list": "ListMixin",
    "create": "CreateMixin",
    "update": "UpdateMixin",
    "delete": "DeleteMixin",
}


class ServiceGenerator(CodeGenerator):
    def __init__(
        self,
        name: str,
        directory: Path | str,
        *,
        mixins: Iterable[str] | None = None,
        table: str | None = None,
        pk_field: str = "id",
        output: Callable[[str], None] | None = None,
    ):
        super().__init__(name, directory, output)
        self.class_name = self.sweet_name("Service")
        self.service_name = snake_case(self.class_name).removesuffix("_service")
        self.pk_field = pk_field

        self.mixins: list[str] = []
        if mixins is not None:
            requested = {mixin.strip().lower() for mixin in mixins if mixin.strip()}
            unknown = requested - MIXINS.keys()
            if unknown:
                raise ValueError(
                    f"Unknown mixins: {', '.join(sorted(unknown))}. "
                    f"Choose from: {', '.join(MIXINS)}"
                )
            if not requested:
                raise ValueError("A generic service needs at least one mixin")
            self.mixins = [MIXINS[key] for key in MIXINS if key in requested]

        self.table = table or f"{self.service_name}s"

    @property
    def is_generic(self) -> bool:
        return bool(self.mixins)

    @property
    def target(self) -> Path:
        return self.directory / f"{snake_case(self.class_name)}.py"

    def generate(self) -> Path:
        self.log(f"Generating {self.class_name}...")

        if self.is_generic:
            content = self.render(
                "generic_service.py.j2",
                class_name=self.class_name,
                service_name=self.service_name,
                mixins=self.mixins,
                table=self.table,
                pk_field=self.pk_field,
            )
        else:
            content = self.render(
                "service.py.j2",
                class_name=self.class_name,
                service_name=self.service_name,
            )

        path = self.create_file(self.target, content)
        self.log(f"{self.class_name} created at {path}")
        self.log(f"Register it in services.build_registry() to expose '{self.service_name}'")
        return path
