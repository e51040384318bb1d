"""Tagged results exchanged by modules, the dispatcher and the transports.

A :class:`Response` is ``{code, data, type}``: an HTTP-style status code, the
body (text or bytes) and its content type. Helpers build the common shapes;
``coerce_result`` turns whatever a command handler returned into a response
(or ``None`` when the handler signalled "not applicable").
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Union

__all__ = [
    "Response",
    "ResponseCode",
    "ResponseType",
    "RESPONSE_OK",
    "RESPONSE_NO_CONTENT",
    "coerce_result",
]


class ResponseCode(IntEnum):
    OK = 200
    NO_CONTENT = 204
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500


class ResponseType:
    TEXT = "text/plain"
    JSON = "application/json"
    HTML = "text/html"
    BINARY = "application/octet-stream"


@dataclass(frozen=True)
class Response:
    """Result of a command, a route execution or a self-description."""

    code: int = ResponseCode.OK
    data: Union[str, bytes] = ""
    type: str = ResponseType.TEXT

    @property
    def ok(self) -> bool:
        """True for the success codes that let a broadcast route continue."""
        return self.code in (ResponseCode.OK, ResponseCode.NO_CONTENT)

    @classmethod
    def text(cls, data: str, code: int = ResponseCode.OK) -> "Response":
        return cls(code=code, data=data, type=ResponseType.TEXT)

    @classmethod
    def json(cls, payload: Any, code: int = ResponseCode.OK) -> "Response":
        return cls(code=code, data=json.dumps(payload, default=str), type=ResponseType.JSON)

    @classmethod
    def html(cls, data: str, code: int = ResponseCode.OK) -> "Response":
        return cls(code=code, data=data, type=ResponseType.HTML)

    @classmethod
    def error(cls, code: int, message: str) -> "Response":
        return cls(code=code, data=message, type=ResponseType.TEXT)

    def body(self) -> bytes:
        if isinstance(self.data, bytes):
            return self.data
        return self.data.encode("utf-8")


RESPONSE_OK = Response()
RESPONSE_NO_CONTENT = Response(code=ResponseCode.NO_CONTENT)


def coerce_result(result: Any) -> Optional[Response]:
    """Normalize a handler return value."""
    if result is None or isinstance(result, Response):
        return result
    if isinstance(result, bytes):
        return Response(data=result, type=ResponseType.BINARY)
    if isinstance(result, str):
        return Response.text(result)
    if isinstance(result, bool):
        return RESPONSE_OK if result else RESPONSE_NO_CONTENT
    return Response.json(result)
