"""Offline scaffolding; never imported on the request path."""

from codegen.base import CodeGenerator, camel_case, snake_case
from codegen.service_generator import MIXINS, ServiceGenerator

__all__ = [
    "MIXINS",
    "CodeGenerator",
    "ServiceGenerator",
    "camel_case",
    "snake_case",
]
