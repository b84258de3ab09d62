"""
models/response.py
------------------
Uniform result envelope returned by service operations.
"""

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Response(Generic[T]):
    """
    Attributes:
        status_code: HTTP-style status code.
        data: Payload on success.
        error: Human-readable message on failure.
    """
    status_code: int
    data: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300

    def to_dict(self) -> dict[str, Any]:
        """Serialize, dropping absent keys. Dataclass payloads are expanded."""
        out: dict[str, Any] = {"statusCode": self.status_code}
        if self.data is not None:
            out["data"] = _serialize(self.data)
        if self.error is not None:
            out["error"] = self.error
        return out


def success(data: T, status: HTTPStatus = HTTPStatus.OK) -> Response[T]:
    return Response(status_code=int(status), data=data)


def failure(status: HTTPStatus, message: str) -> Response:
    return Response(status_code=int(status), error=message)


def _serialize(value: Any) -> Any:
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value
