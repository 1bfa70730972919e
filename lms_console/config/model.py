from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .. import constants


class ConsoleSettings(BaseModel):
    """Runtime settings of the console client.

    Attributes:
        base_url: API root, without a trailing slash.
        request_timeout: Per-request timeout in seconds.
        refresh_timeout: Timeout of the credential refresh call in seconds.
        credentials_file: Where the credential store persists its state.
        login_route: Route the session terminator navigates to.
        store_write_attempts: Attempts for a credential store write.
    """

    model_config = ConfigDict(extra="ignore")

    base_url: str = constants.LMS_API_BASE_URL
    request_timeout: float = Field(default=constants.REQUEST_TIMEOUT_SECONDS, gt=0)
    refresh_timeout: float = Field(default=constants.REFRESH_TIMEOUT_SECONDS, gt=0)
    credentials_file: Path = Field(default=Path(constants.CREDENTIALS_FILE), validate_default=True)
    login_route: str = constants.LOGIN_ROUTE
    store_write_attempts: int = Field(default=constants.STORE_WRITE_ATTEMPTS, ge=1)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Strip whitespace and trailing slashes; only http(s) is accepted."""
        url = v.strip().rstrip("/")
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return url

    @field_validator("credentials_file", mode="before")
    @classmethod
    def expand_credentials_file(cls, v: Any) -> Path:
        return Path(str(v)).expanduser()

    @field_validator("login_route")
    @classmethod
    def validate_login_route(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("login_route must not be empty")
        return v.strip()

    @classmethod
    def from_env(cls) -> ConsoleSettings:
        """Settings from the environment-overridable constants."""
        return cls(
            base_url=constants.LMS_API_BASE_URL,
            request_timeout=constants.REQUEST_TIMEOUT_SECONDS,
            refresh_timeout=constants.REFRESH_TIMEOUT_SECONDS,
            credentials_file=constants.CREDENTIALS_FILE,
            login_route=constants.LOGIN_ROUTE,
            store_write_attempts=constants.STORE_WRITE_ATTEMPTS,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConsoleSettings:
        """Create settings from a mapping; unknown keys are ignored.

        Args:
            data: Raw settings, e.g. a parsed JSON file.

        Returns:
            ConsoleSettings instance.
        """
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
