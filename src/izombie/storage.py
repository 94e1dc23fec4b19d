"""Persistence for level payloads and their listing metadata."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Set, Tuple

from .clone import Clone
from .decode import LevelFormat, decode_bytes
from .errors import LevelCodecError

logger = logging.getLogger(__name__)


@dataclass
class LevelRecord:
    """Listing metadata stored alongside each level payload."""

    id: int
    name: str
    author: str
    created_at: int
    sun: int
    is_water: bool
    version: int = int(LevelFormat.IZL3)
    plays: int = 0
    favorites: int = 0
    reports: int = 0
    featured: bool = False
    featured_at: int | None = None

    def to_payload(self) -> Dict[str, object]:
        """Return a JSON-serialisable representation of the record."""

        return {
            "id": self.id,
            "name": self.name,
            "author": self.author,
            "created_at": self.created_at,
            "sun": self.sun,
            "is_water": self.is_water,
            "version": self.version,
            "plays": self.plays,
            "favorites": self.favorites,
            "reports": self.reports,
            "featured": self.featured,
            "featured_at": self.featured_at,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "LevelRecord":
        """Build a record from its stored representation."""

        if not isinstance(payload, Mapping):
            raise ValueError("Invalid level record: expected an object")

        try:
            return cls(
                id=int(payload["id"]),
                name=str(payload["name"]),
                author=str(payload["author"]),
                created_at=int(payload["created_at"]),
                sun=int(payload["sun"]),
                is_water=bool(payload["is_water"]),
                version=int(payload.get("version", int(LevelFormat.IZL3))),
                plays=int(payload.get("plays", 0)),
                favorites=int(payload.get("favorites", 0)),
                reports=int(payload.get("reports", 0)),
                featured=bool(payload.get("featured", False)),
                featured_at=_optional_int(payload.get("featured_at")),
            )
        except KeyError as exc:
            raise ValueError(f"Invalid level record: missing {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid level record: {exc}") from exc


class LevelDecodeResult(NamedTuple):
    """Outcome of a best-effort decode; exactly one field is set."""

    decoded: Clone | None
    decode_error: str | None


class LevelStore(ABC):
    """Interface describing where level payloads and records are kept."""

    @abstractmethod
    def read_level_bytes(self, level_id: int, version: int) -> bytes:
        """Return the stored payload.

        Raises:
            FileNotFoundError: If no payload exists for ``level_id``/``version``.
        """

    @abstractmethod
    def write_level_bytes(
        self, level_id: int, data: bytes, version: int = int(LevelFormat.IZL3)
    ) -> None:
        """Persist ``data`` as the payload of ``level_id``."""

    @abstractmethod
    def save_record(self, record: LevelRecord) -> None:
        """Store a new record.

        Raises:
            FileExistsError: If a record with the same id already exists.
        """

    @abstractmethod
    def update_record(self, record: LevelRecord) -> None:
        """Replace an existing record.

        Raises:
            FileNotFoundError: If the record does not exist.
        """

    @abstractmethod
    def load_record(self, level_id: int) -> LevelRecord:
        """Return the record for ``level_id``.

        Raises:
            FileNotFoundError: If the record does not exist.
        """

    @abstractmethod
    def list_records(self) -> List[LevelRecord]:
        """Return every record, newest first."""

    @abstractmethod
    def delete_record(self, level_id: int) -> None:
        """Remove the record of ``level_id`` and its favorites.

        Raises:
            FileNotFoundError: If the record does not exist.
        """

    @abstractmethod
    def delete_level_bytes(self, level_id: int, version: int) -> None:
        """Remove a stored payload.

        Raises:
            FileNotFoundError: If no payload exists for ``level_id``/``version``.
        """

    @abstractmethod
    def load_favorites(self, level_id: int) -> Set[str]:
        """Return the client keys that favorited ``level_id``."""

    @abstractmethod
    def save_favorites(self, level_id: int, clients: Set[str]) -> None:
        """Replace the client keys that favorited ``level_id``."""

    def exists(self, level_id: int) -> bool:
        try:
            self.load_record(level_id)
        except FileNotFoundError:
            return False
        return True

    def next_level_id(self) -> int:
        """Return an id one greater than the largest stored id."""

        return max((record.id for record in self.list_records()), default=0) + 1


class InMemoryLevelStore(LevelStore):
    """Keep levels in local process memory."""

    def __init__(self) -> None:
        self._payloads: Dict[Tuple[int, int], bytes] = {}
        self._records: Dict[int, LevelRecord] = {}
        self._favorites: Dict[int, Set[str]] = {}

    def read_level_bytes(self, level_id: int, version: int) -> bytes:
        try:
            return self._payloads[(level_id, version)]
        except KeyError as exc:
            raise FileNotFoundError(
                f"Level {level_id} has no version {version} payload"
            ) from exc

    def write_level_bytes(
        self, level_id: int, data: bytes, version: int = int(LevelFormat.IZL3)
    ) -> None:
        self._payloads[(level_id, version)] = bytes(data)

    def save_record(self, record: LevelRecord) -> None:
        if record.id in self._records:
            raise FileExistsError(f"Level {record.id} already exists")
        self._records[record.id] = record

    def update_record(self, record: LevelRecord) -> None:
        if record.id not in self._records:
            raise FileNotFoundError(f"Level {record.id} does not exist")
        self._records[record.id] = record

    def load_record(self, level_id: int) -> LevelRecord:
        try:
            return self._records[level_id]
        except KeyError as exc:
            raise FileNotFoundError(f"Level {level_id} does not exist") from exc

    def list_records(self) -> List[LevelRecord]:
        return _newest_first(self._records.values())

    def delete_record(self, level_id: int) -> None:
        try:
            del self._records[level_id]
        except KeyError as exc:
            raise FileNotFoundError(f"Level {level_id} does not exist") from exc
        self._favorites.pop(level_id, None)

    def delete_level_bytes(self, level_id: int, version: int) -> None:
        try:
            del self._payloads[(level_id, version)]
        except KeyError as exc:
            raise FileNotFoundError(
                f"Level {level_id} has no version {version} payload"
            ) from exc

    def load_favorites(self, level_id: int) -> Set[str]:
        return set(self._favorites.get(level_id, ()))

    def save_favorites(self, level_id: int, clients: Set[str]) -> None:
        self._favorites[level_id] = set(clients)


class FileLevelStore(LevelStore):
    """Persist levels as ``<id>.izl*`` payloads with ``<id>.json`` records."""

    def __init__(self, root: Path, *, create: bool = True) -> None:
        self.root = root
        if create:
            self.root.mkdir(parents=True, exist_ok=True)

    def level_path(self, level_id: int, version: int) -> Path:
        extension = LevelFormat(version).file_extension
        return self.root / f"{_validate_level_id(level_id)}.{extension}"

    def read_level_bytes(self, level_id: int, version: int) -> bytes:
        path = self.level_path(level_id, version)
        if not path.is_file():
            raise FileNotFoundError(f"Level file '{path.name}' does not exist")
        return path.read_bytes()

    def write_level_bytes(
        self, level_id: int, data: bytes, version: int = int(LevelFormat.IZL3)
    ) -> None:
        path = self.level_path(level_id, version)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise RuntimeError(f"Failed to write level file '{path.name}'.") from exc

    def save_record(self, record: LevelRecord) -> None:
        path = self._record_path(record.id)
        if path.exists():
            raise FileExistsError(f"Level {record.id} already exists")
        self._write_record(path, record)

    def update_record(self, record: LevelRecord) -> None:
        path = self._record_path(record.id)
        if not path.exists():
            raise FileNotFoundError(f"Level {record.id} does not exist")
        self._write_record(path, record)

    def load_record(self, level_id: int) -> LevelRecord:
        path = self._record_path(level_id)
        if not path.exists():
            raise FileNotFoundError(f"Level {level_id} does not exist")
        return self._read_record(path)

    def list_records(self) -> List[LevelRecord]:
        if not self.root.exists():
            return []
        records = [
            self._read_record(path)
            for path in self.root.glob("*.json")
            if path.is_file() and path.stem.isdigit()
        ]
        return _newest_first(records)

    def delete_record(self, level_id: int) -> None:
        path = self._record_path(level_id)
        if not path.exists():
            raise FileNotFoundError(f"Level {level_id} does not exist")
        try:
            path.unlink()
            self._favorites_path(level_id).unlink(missing_ok=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to delete level {level_id}.") from exc

    def delete_level_bytes(self, level_id: int, version: int) -> None:
        path = self.level_path(level_id, version)
        if not path.is_file():
            raise FileNotFoundError(f"Level file '{path.name}' does not exist")
        try:
            path.unlink()
        except OSError as exc:
            raise RuntimeError(f"Failed to delete level file '{path.name}'.") from exc

    def load_favorites(self, level_id: int) -> Set[str]:
        path = self._favorites_path(level_id)
        if not path.exists():
            return set()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ValueError(f"Failed to load favorites from '{path}'.") from exc
        if not isinstance(payload, list):
            raise ValueError(f"Favorites file '{path}' must contain a list.")
        return {str(client) for client in payload}

    def save_favorites(self, level_id: int, clients: Set[str]) -> None:
        path = self._favorites_path(level_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(sorted(clients)), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError("Failed to persist level favorites.") from exc

    def _record_path(self, level_id: int) -> Path:
        return self.root / f"{_validate_level_id(level_id)}.json"

    def _favorites_path(self, level_id: int) -> Path:
        # The stem is not all digits, so list_records skips these files.
        return self.root / f"{_validate_level_id(level_id)}.favorites.json"

    @staticmethod
    def _read_record(path: Path) -> LevelRecord:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise ValueError(f"Failed to load level record from '{path}'.") from exc
        return LevelRecord.from_payload(payload)

    @staticmethod
    def _write_record(path: Path, record: LevelRecord) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(record.to_payload(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise RuntimeError("Failed to persist level record.") from exc


def decode_level_from_store(
    store: LevelStore, level_id: int, version: int
) -> LevelDecodeResult:
    """Read and decode a stored level without raising.

    Missing files and corrupt payloads are reported through
    ``decode_error`` so listings can degrade to "no thumbnail".
    """

    try:
        data = store.read_level_bytes(level_id, version)
        return LevelDecodeResult(decode_bytes(data), None)
    except (OSError, LevelCodecError) as exc:
        logger.warning("Could not decode level %s (v%s): %s", level_id, version, exc)
        return LevelDecodeResult(None, str(exc) or exc.__class__.__name__)


def _newest_first(records: Any) -> List[LevelRecord]:
    return sorted(records, key=lambda record: (record.created_at, record.id), reverse=True)


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _validate_level_id(level_id: int) -> int:
    if isinstance(level_id, bool) or not isinstance(level_id, int):
        raise TypeError("level_id must be an integer")
    if level_id < 1:
        raise ValueError("level_id must be a positive integer")
    return level_id


__all__ = [
    "FileLevelStore",
    "InMemoryLevelStore",
    "LevelDecodeResult",
    "LevelRecord",
    "LevelStore",
    "decode_level_from_store",
]
