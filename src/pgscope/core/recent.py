"""Most-recently-used connection history.

Entries are keyed by host:port:database:user, newest first, capped at
MAX_RECENT. Passwords are blanked before anything is written to disk.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from pgscope.core.exceptions import ConfigError
from pgscope.core.models import ConnectionConfig, RecentConnection

DEFAULT_RECENT_PATH = Path.home() / ".config" / "pgscope" / "recent.json"

MAX_RECENT = 10

_ENTRIES = TypeAdapter(list[RecentConnection])


def connection_id(config: ConnectionConfig) -> str:
    return f"{config.host}:{config.port}:{config.database}:{config.user}"


def connection_name(config: ConnectionConfig) -> str:
    return f"{config.user}@{config.host}:{config.port}/{config.database}"


class RecentConnectionsStore:
    """JSON-file backed history of recently used connections."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or DEFAULT_RECENT_PATH

    def entries(self) -> list[RecentConnection]:
        """Return entries newest first. A missing file is an empty history."""
        if not self.path.exists():
            return []
        try:
            return _ENTRIES.validate_json(self.path.read_bytes())
        except ValidationError as e:
            msg = f"Malformed connection history in {self.path}: {e}"
            raise ConfigError(msg) from e

    def _save(self, entries: list[RecentConnection]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.model_dump(mode="json") for entry in entries]
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2))
        tmp_path.replace(self.path)

    def add(
        self, config: ConnectionConfig, *, now: datetime | None = None
    ) -> RecentConnection:
        """Record a use of ``config``, moving it to the front."""
        entry = RecentConnection(
            id=connection_id(config),
            name=connection_name(config),
            config=config.without_password(),
            last_used=now or datetime.now(UTC),
        )
        others = [e for e in self.entries() if e.id != entry.id]
        self._save([entry, *others][:MAX_RECENT])
        return entry

    def get(self, entry_id: str) -> RecentConnection | None:
        return next((e for e in self.entries() if e.id == entry_id), None)

    def remove(self, entry_id: str) -> bool:
        entries = self.entries()
        kept = [e for e in entries if e.id != entry_id]
        if len(kept) == len(entries):
            return False
        self._save(kept)
        return True

    def clear(self) -> None:
        self._save([])
