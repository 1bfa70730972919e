"""Request / response value types shared by the dispatcher and coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ApiRequest:
    """A logical API call, kept across its original send and one replay.

    Attributes:
        method: HTTP method.
        path: Path relative to the API base URL (or an absolute URL).
        params: Query parameters.
        json_body: JSON body, if any.
        headers: Outgoing headers; ``Authorization`` is (re)written on every send.
        timeout: Transport timeout in seconds for each send of this request.
        retried: Set once the request has been resubmitted after a refresh.
    """

    method: str
    path: str
    params: dict[str, Any] | None = None
    json_body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    retried: bool = False

    @property
    def authorization(self) -> str | None:
        return self.headers.get("Authorization")


@dataclass
class ApiResponse:
    """Successful (< 400) response with its decoded body."""

    status: int
    headers: dict[str, str]
    data: Any
    request: ApiRequest
