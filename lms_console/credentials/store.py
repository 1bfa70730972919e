"""Credential persistence.

The store is a dumb persistence boundary: it never validates token contents.
Both tokens are written as one snapshot and cleared as one snapshot (together
with the cached profile), so a reader never observes a half-updated pair.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..constants import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    STORE_WRITE_ATTEMPTS,
    STORE_WRITE_MAX_BACKOFF_SECONDS,
    USER_KEY,
)
from ..errors.handling import retry_on_os_error
from .types import CredentialKind, CredentialPair


@runtime_checkable
class CredentialStore(Protocol):
    """Read/write/clear interface injected into the request pipeline."""

    async def get(self, kind: CredentialKind) -> str | None: ...

    async def set_pair(self, access_token: str, refresh_token: str) -> None: ...

    async def clear(self) -> None: ...

    async def get_user(self) -> dict[str, Any] | None: ...

    async def set_user(self, user: Mapping[str, Any]) -> None: ...


def _decode_user(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        user = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logging.debug("⚠️ Cached user profile is not valid JSON; ignoring")
        return None
    return user if isinstance(user, dict) else None


class MemoryCredentialStore:
    """Process-local store, mainly for tests and one-shot scripts."""

    def __init__(self, pair: CredentialPair | None = None) -> None:
        self._values: dict[str, str] = {}
        self.clear_count = 0
        if pair is not None:
            self._values = {
                ACCESS_TOKEN_KEY: pair.access_token,
                REFRESH_TOKEN_KEY: pair.refresh_token,
            }

    async def get(self, kind: CredentialKind) -> str | None:
        return self._values.get(kind.value)

    async def set_pair(self, access_token: str, refresh_token: str) -> None:
        # Replace the whole mapping so the pair changes in one step.
        self._values = {
            **self._values,
            ACCESS_TOKEN_KEY: access_token,
            REFRESH_TOKEN_KEY: refresh_token,
        }

    async def clear(self) -> None:
        self._values = {}
        self.clear_count += 1

    async def get_user(self) -> dict[str, Any] | None:
        return _decode_user(self._values.get(USER_KEY))

    async def set_user(self, user: Mapping[str, Any]) -> None:
        self._values = {**self._values, USER_KEY: json.dumps(dict(user))}


class JsonFileCredentialStore:
    """Durable key-value store backed by a single JSON file.

    Layout: ``{"accessToken": ..., "refreshToken": ..., "user": "<json>"}``.
    Every mutation writes a full snapshot to a temp file and ``os.replace``s
    it over the target, so the file always holds a complete pair or nothing.
    Blocking file I/O runs in the default executor and is retried on
    ``OSError`` with Tenacity.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        write_attempts: int = STORE_WRITE_ATTEMPTS,
    ) -> None:
        """Initialize the store and load any existing snapshot.

        Args:
            path: Location of the credentials file (``~`` is expanded).
            write_attempts: Attempts per write before the OSError propagates.
        """
        self.path = Path(path).expanduser()
        self.write_attempts = max(1, write_attempts)
        self._lock = asyncio.Lock()
        self._values: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        try:
            raw: Any = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logging.warning(
                f"⚠️ Credentials file unreadable, starting signed out path={self.path} error={type(e).__name__}"
            )
            return {}
        if not isinstance(raw, Mapping):
            logging.warning(f"⚠️ Credentials file has unexpected layout path={self.path}")
            return {}
        values = {
            k: v
            for k, v in raw.items()
            if k in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY) and isinstance(v, str)
        }
        # A lone token is a torn write from an older client; drop both.
        if (ACCESS_TOKEN_KEY in values) != (REFRESH_TOKEN_KEY in values):
            values.pop(ACCESS_TOKEN_KEY, None)
            values.pop(REFRESH_TOKEN_KEY, None)
        return values

    def _write_snapshot(self, snapshot: dict[str, str]) -> None:
        if not snapshot:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def _commit(self, snapshot: dict[str, str], context: str) -> None:
        loop = asyncio.get_running_loop()

        async def operation() -> None:
            await loop.run_in_executor(None, self._write_snapshot, snapshot)

        await retry_on_os_error(
            operation,
            context,
            max_attempts=self.write_attempts,
            max_backoff=STORE_WRITE_MAX_BACKOFF_SECONDS,
        )
        self._values = snapshot

    async def get(self, kind: CredentialKind) -> str | None:
        return self._values.get(kind.value)

    async def set_pair(self, access_token: str, refresh_token: str) -> None:
        async with self._lock:
            snapshot = {
                **self._values,
                ACCESS_TOKEN_KEY: access_token,
                REFRESH_TOKEN_KEY: refresh_token,
            }
            await self._commit(snapshot, "credential pair write")
        logging.debug(f"💾 Stored credential pair path={self.path}")

    async def clear(self) -> None:
        async with self._lock:
            if not self._values and not self.path.exists():
                return
            await self._commit({}, "credential clear")
        logging.debug(f"🗑️ Cleared stored credentials path={self.path}")

    async def get_user(self) -> dict[str, Any] | None:
        return _decode_user(self._values.get(USER_KEY))

    async def set_user(self, user: Mapping[str, Any]) -> None:
        async with self._lock:
            snapshot = {**self._values, USER_KEY: json.dumps(dict(user))}
            await self._commit(snapshot, "user profile write")
