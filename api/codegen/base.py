"""Shared plumbing for the scaffolding generators."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from core.logger import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def camel_case(name: str) -> str:
    """``blog_post``, ``blog-post`` and ``blog post`` all become ``BlogPost``."""
    parts = [part for part in re.split(r"[\s_\-]+", name.strip()) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts)


def snake_case(name: str) -> str:
    """``BlogPostService`` -> ``blog_post_service``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", camel_case(name)).lower()


class CodeGenerator(ABC):
    """Renders a template into a new source file.

    ``output`` receives progress messages (the CLI passes ``print``); without
    it they go to the structured logger.
    """

    def __init__(
        self,
        name: str,
        directory: Path | str,
        output: Callable[[str], None] | None = None,
    ):
        if not name or not name.strip():
            raise ValueError("A name is required")
        self.name = name.strip()
        self.directory = Path(directory)
        self.output = output

    def sweet_name(self, suffix: str) -> str:
        """``user`` -> ``UserService``; ``userService`` stays ``UserService``."""
        base = camel_case(self.name)
        if suffix.lower() in base.lower():
            return base
        return base + suffix

    @abstractmethod
    def generate(self) -> Path: ...

    def log(self, message: str) -> None:
        if self.output is not None:
            self.output(message)
        else:
            logger.info("codegen.progress", message=message)

    def get_or_create_directory(self, directory: Path) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def render(self, template: str, **context: Any) -> str:
        return _environment.get_template(template).render(**context)

    def create_file(self, filename: Path, content: str) -> Path:
        """Write ``content`` to a new file; never overwrites."""
        if filename.exists():
            raise FileExistsError(f"{filename} already exists")
        self.get_or_create_directory(filename.parent)
        filename.write_text(content, encoding="utf-8")
        return filename
