"""Per-connection key-value state for checks.

Checks use state to remember values between scheduled runs, for example the
last resource ID they saw. Storage is injected by the orchestrator; when none
is given the context falls back to an in-memory map that lives as long as
the context.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from integration_audit.utils.logging import get_logger

logger = get_logger("state")


@runtime_checkable
class StateStorage(Protocol):
    """Protocol for check state storage.

    Example:
        class RedisStateStorage:
            async def get(self, key: str) -> Any | None:
                raw = await redis.get(f"{connection_id}:{key}")
                return json.loads(raw) if raw else None

            async def set(self, key: str, value: Any) -> None:
                await redis.set(f"{connection_id}:{key}", json.dumps(value))
    """

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key was never set."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        ...


class InMemoryStateStorage:
    """State kept in a dict."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    async def get(self, key: str) -> Any | None:
        return self._values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def __len__(self) -> int:
        return len(self._values)


class FileStateStorage:
    """State persisted as one JSON file per key.

    Files live under ``<directory>/<connection hash>/`` so connections
    never see each other's state.

    Example:
        storage = FileStateStorage("~/.integration-audit/state", connection_id="conn_1")
        await storage.set("last_seen_id", "evt_42")
    """

    def __init__(self, directory: Path | str | None, connection_id: str) -> None:
        """Initialize the storage.

        Args:
            directory: Root directory. Defaults to ~/.integration-audit/state
            connection_id: Connection the state belongs to
        """
        if directory is None:
            directory = Path.home() / ".integration-audit" / "state"
        self._connection_id = connection_id
        self._directory = Path(directory).expanduser() / self._hash(connection_id)
        self._directory.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._directory

    @staticmethod
    def _hash(value: str) -> str:
        return hashlib.sha256(value.encode()).hexdigest()[:32]

    def _key_to_path(self, key: str) -> Path:
        return self._directory / f"{self._hash(key)}.json"

    async def get(self, key: str) -> Any | None:
        path = self._key_to_path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable state for key {key!r}: {e}")
            return None
        return data.get("value")

    async def set(self, key: str, value: Any) -> None:
        path = self._key_to_path(key)
        path.write_text(json.dumps({"key": key, "value": value}, default=str))

    def clear(self) -> None:
        """Remove all state for this connection."""
        for path in self._directory.glob("*.json"):
            path.unlink(missing_ok=True)
