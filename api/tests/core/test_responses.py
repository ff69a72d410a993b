"""Unit tests for core.responses and core.exceptions."""

import pytest

from core.exceptions import (
    InvalidData,
    PioniaError,
    ResourceNotFound,
    UserUnauthenticated,
    UserUnauthorized,
)
from core.responses import SUCCESS, BaseResponse

pytestmark = pytest.mark.unit


class TestBaseResponse:
    def test_defaults(self):
        response = BaseResponse()
        assert response.model_dump() == {
            "status": 0,
            "message": "",
            "payload": None,
            "extra": None,
        }
        assert response.ok is True

    def test_json_response(self):
        response = BaseResponse.json_response(
            message="Article list", payload=[{"id": 1}], extra={"count": 1}
        )
        assert response.status == SUCCESS
        assert response.payload == [{"id": 1}]
        assert response.extra == {"count": 1}

    def test_non_zero_status_is_not_ok(self):
        assert BaseResponse.json_response(status=400).ok is False

    def test_from_exception(self):
        response = BaseResponse.from_exception(ResourceNotFound("Article with id 9 not found"))
        assert response.status == 404
        assert response.message == "Article with id 9 not found"
        assert response.payload is None


class TestExceptions:
    @pytest.mark.parametrize(
        ("exc_class", "code"),
        [
            (ResourceNotFound, 404),
            (UserUnauthenticated, 401),
            (UserUnauthorized, 403),
            (InvalidData, 400),
        ],
    )
    def test_codes(self, exc_class: type[PioniaError], code: int):
        exc = exc_class()
        assert exc.code == code
        assert isinstance(exc, PioniaError)

    def test_default_message(self):
        assert ResourceNotFound().message == "Resource not found"
        assert str(InvalidData()) == "Invalid data"

    def test_custom_message_and_code(self):
        exc = PioniaError("Teapot", code=418)
        assert exc.message == "Teapot"
        assert exc.code == 418
        assert PioniaError().code == 500
