"""Uniform response envelope returned by every service action."""

from typing import Any, Self

from pydantic import BaseModel

from core.exceptions import PioniaError

SUCCESS = 0


class BaseResponse(BaseModel):
    """``{status, message, payload, extra}``; status 0 denotes success."""

    status: int = SUCCESS
    message: str = ""
    payload: Any = None
    extra: Any = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def json_response(
        cls,
        status: int = SUCCESS,
        message: str = "",
        payload: Any = None,
        extra: Any = None,
    ) -> Self:
        return cls(status=status, message=message, payload=payload, extra=extra)

    @classmethod
    def from_exception(cls, exc: PioniaError) -> Self:
        return cls(status=exc.code, message=exc.message)
