"""The per-call request object handed to every service action."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from core.auth import ANONYMOUS, ContextUser
from core.exceptions import InvalidData

SERVICE_KEYS = ("SERVICE", "service")
ACTION_KEYS = ("ACTION", "action")


def _first_of(data: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    return None


@dataclass(frozen=True)
class ServiceRequest:
    """Immutable view of one inbound call.

    ``service`` and ``action`` are read from the payload (upper-case keys win,
    as older clients send ``SERVICE``/``ACTION``). Either may be None; the
    dispatcher decides what that means.

    ``data`` is deep-copied, so nested values cannot change after the
    request is built. Uploaded files are shared, not copied.
    """

    data: Mapping[str, Any]
    files: Mapping[str, UploadFile] = field(default_factory=dict)
    user: ContextUser = ANONYMOUS

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def service(self) -> str | None:
        return _first_of(self.data, SERVICE_KEYS)

    @property
    def action(self) -> str | None:
        return _first_of(self.data, ACTION_KEYS)

    @classmethod
    def build(
        cls,
        data: Mapping[str, Any],
        files: Mapping[str, UploadFile] | None = None,
        user: ContextUser | None = None,
    ) -> ServiceRequest:
        return cls(data=data, files=files or {}, user=user or ANONYMOUS)


async def read_service_request(request: Request, user: ContextUser) -> ServiceRequest:
    """Parse a JSON or multipart/urlencoded body into a ServiceRequest."""
    content_type = request.headers.get("content-type", "")

    data: dict[str, Any] = {}
    files: dict[str, UploadFile] = {}

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files[key] = value
            else:
                data[key] = value
    else:
        body = await request.body()
        if body:
            try:
                parsed = json.loads(body)
            except json.JSONDecodeError as e:
                raise InvalidData(f"Malformed JSON body: {e.msg}") from e
            if not isinstance(parsed, dict):
                raise InvalidData("Request body must be a JSON object")
            data = parsed

    return ServiceRequest.build(data=data, files=files, user=user)
