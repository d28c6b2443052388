# Credential Store — durable key/value persistence for auth records.
# Created: 2026-10-18
#
# Two backends: in-memory (tests, short-lived processes) and a single JSON
# file at ~/.drupal-auth/credentials.json that survives restarts.

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "StoredEntry",
]


@dataclass
class StoredEntry:
    """One persisted value plus its cookie-like attributes."""

    value: str
    expires_at: float | None = None  # Unix timestamp, None = no expiry
    secure_only: bool = True
    same_site_strict: bool = True

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class CredentialStore(ABC):
    """Synchronous key/value store with per-entry expiry.

    A missing key is a normal state: ``get`` returns None and ``remove`` is a
    no-op. Entries past their ``expires_at`` behave exactly like missing ones.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    # -- backend primitives --

    @abstractmethod
    def _read(self, key: str) -> StoredEntry | None: ...

    @abstractmethod
    def _write(self, key: str, entry: StoredEntry) -> None: ...

    @abstractmethod
    def _delete(self, key: str) -> None: ...

    @abstractmethod
    def _keys(self) -> list[str]: ...

    # -- public contract --

    def set(
        self,
        key: str,
        value: str,
        *,
        expires_at: float | None = None,
        secure_only: bool = True,
        same_site_strict: bool = True,
    ) -> None:
        self._write(
            key,
            StoredEntry(
                value=str(value),
                expires_at=expires_at,
                secure_only=secure_only,
                same_site_strict=same_site_strict,
            ),
        )

    def get(self, key: str) -> str | None:
        entry = self._read(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._delete(key)
            return None
        return entry.value

    def remove(self, key: str) -> None:
        self._delete(key)

    def keys(self) -> list[str]:
        """Keys of all entries that have not expired."""
        return [k for k in self._keys() if self.get(k) is not None]

    def remove_all_with_prefix(self, prefix: str) -> None:
        """Remove every entry whose key starts with *prefix*.

        Never raises: a failure on one entry is logged and the rest are
        still removed.
        """
        for key in [k for k in self._keys() if k.startswith(prefix)]:
            try:
                self._delete(key)
            except Exception as e:
                logger.warning("Failed to remove stored entry %s: %s", key, e)


class MemoryCredentialStore(CredentialStore):
    """Dict-backed store. Contents vanish with the process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._entries: dict[str, StoredEntry] = {}

    def _read(self, key: str) -> StoredEntry | None:
        return self._entries.get(key)

    def _write(self, key: str, entry: StoredEntry) -> None:
        self._entries[key] = entry

    def _delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def _keys(self) -> list[str]:
        return list(self._entries)


class FileCredentialStore(CredentialStore):
    """JSON-file store. The file is chmod 0600 (owner-only read/write).

    The file is re-read on every access so that separate processes (e.g. two
    CLI invocations on either side of the browser redirect) see each other's
    writes. Writes go through a temp file + ``os.replace``.
    """

    def __init__(self, path: Path, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.path = Path(path)

    def _load(self) -> dict[str, StoredEntry]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text())
            if not isinstance(raw, dict):
                raise ValueError(f"expected a JSON object, got {type(raw).__name__}")
            return {key: StoredEntry(**data) for key, data in raw.items()}
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Ignoring unreadable credential file %s: %s", self.path, e)
            return {}

    def _save(self, entries: dict[str, StoredEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: asdict(entry) for key, entry in entries.items()}
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".credentials-")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp, stat.S_IRUSR | stat.S_IWUSR)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _read(self, key: str) -> StoredEntry | None:
        return self._load().get(key)

    def _write(self, key: str, entry: StoredEntry) -> None:
        entries = self._load()
        entries[key] = entry
        self._save(entries)

    def _delete(self, key: str) -> None:
        entries = self._load()
        if entries.pop(key, None) is not None:
            self._save(entries)

    def _keys(self) -> list[str]:
        return list(self._load())

    def remove_all_with_prefix(self, prefix: str) -> None:
        # Single rewrite so the removal is all-or-nothing on disk
        try:
            entries = self._load()
            kept = {k: v for k, v in entries.items() if not k.startswith(prefix)}
            if len(kept) != len(entries):
                self._save(kept)
        except OSError as e:
            logger.warning("Failed to clear credentials with prefix %s: %s", prefix, e)
