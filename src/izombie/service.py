"""Business logic for uploading, listing and editing shared levels."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List

from .clone import Clone
from .decode import LevelFormat, decode_bytes, detect_file_format
from .encode import encode
from .errors import DecodeError
from .storage import LevelRecord, LevelStore, decode_level_from_store
from .thumbnail import extract_thumbnail
from .validate import validate

logger = logging.getLogger(__name__)

DEFAULT_MAX_AUTHOR_LENGTH = 11
MAX_REPORT_REASON_LENGTH = 500


class LevelNotFoundError(KeyError):
    """Raised when a level id does not exist."""


class LevelRejectedError(ValueError):
    """Raised when an uploaded level cannot be published."""

    def __init__(self, error: str, message: str) -> None:
        super().__init__(f"{error}: {message}")
        self.error = error
        self.message = message


class UnsupportedVersionError(LevelRejectedError):
    """Raised when an upload uses a retired wire format."""


class LevelSort(str, Enum):
    """Listing orders; every order breaks ties by newest first."""

    PLAYS = "plays"
    RECENT = "recent"
    FAVORITES = "favorites"


_SORT_KEYS: Dict[LevelSort, Callable[[LevelRecord], Any]] = {
    LevelSort.PLAYS: lambda record: (record.plays, record.created_at, record.id),
    LevelSort.RECENT: lambda record: (record.created_at, record.id),
    LevelSort.FAVORITES: lambda record: (record.favorites, record.created_at, record.id),
}


@dataclass(frozen=True)
class LevelListing:
    """A record paired with its thumbnail rows (``None`` when unavailable)."""

    record: LevelRecord
    thumbnail: List[List[Any]] | None


@dataclass(frozen=True)
class LevelPage:
    """One page of listings plus pagination totals."""

    items: List[LevelListing]
    page: int
    page_size: int
    total_items: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return (self.total_items + self.page_size - 1) // self.page_size


class LevelService:
    """Coordinate the codec, the validator and a :class:`LevelStore`.

    Every read-modify-write of a record runs under one lock, so concurrent
    uploads never share an id and concurrent downloads never lose a play.
    """

    def __init__(
        self,
        store: LevelStore,
        *,
        max_author_length: int = DEFAULT_MAX_AUTHOR_LENGTH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_author_length < 1:
            raise ValueError("max_author_length must be greater than zero.")
        self._store = store
        self._max_author_length = max_author_length
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def store(self) -> LevelStore:
        return self._store

    def upload_level(self, data: bytes, author: str) -> LevelRecord:
        """Validate and store a newly uploaded level.

        Raises:
            UnsupportedVersionError: If ``data`` is not an ``IZL3`` file.
            LevelRejectedError: If the level cannot be decoded or fails
                validation.
        """

        cleaned_author = _normalise_author(author, self._max_author_length)
        if not data:
            raise LevelRejectedError("Invalid input", "Level data must not be empty")

        version = detect_file_format(data)
        if version is not LevelFormat.IZL3:
            raise UnsupportedVersionError(
                "Invalid level data format",
                "Only IZL3 levels are supported. IZL2 is deprecated.",
            )

        try:
            clone = decode_bytes(data)
        except DecodeError as exc:
            logger.info("Rejected undecodable upload from %r: %s", cleaned_author, exc)
            raise LevelRejectedError(
                "Invalid level data format", "Could not decode the level data"
            ) from exc

        ok, reason = validate(clone)
        if not ok:
            raise LevelRejectedError(
                "Invalid level data",
                f"The level data failed validation checks: {reason}",
            )

        sun = _whole_number(clone.sun)
        if not isinstance(clone.name, str) or not clone.name.strip() or sun is None:
            raise LevelRejectedError(
                "Invalid level data",
                "Level data must contain a valid name and sun value",
            )

        with self._lock:
            record = LevelRecord(
                id=self._store.next_level_id(),
                name=clone.name,
                author=cleaned_author,
                created_at=int(self._clock()),
                sun=sun,
                is_water=clone.is_water,
                version=int(version),
            )
            self._store.write_level_bytes(record.id, data, record.version)
            self._store.save_record(record)
        logger.info("Stored level %d %r by %r", record.id, record.name, record.author)
        return record

    def get_level(self, level_id: int) -> LevelRecord:
        try:
            return self._store.load_record(level_id)
        except FileNotFoundError as exc:
            raise LevelNotFoundError(f"Level {level_id} does not exist.") from exc

    def get_listing(self, level_id: int) -> LevelListing:
        """Return the record of ``level_id`` with its thumbnail."""

        return self._listing_for(self.get_level(level_id))

    def load_clone(self, level_id: int) -> Clone:
        """Decode the stored payload of ``level_id``.

        Raises:
            LevelNotFoundError: If the level or its payload is missing.
            LevelCodecError: If the payload is corrupt.
        """

        record = self.get_level(level_id)
        try:
            data = self._store.read_level_bytes(record.id, record.version)
        except FileNotFoundError as exc:
            raise LevelNotFoundError(f"Level {level_id} has no stored data.") from exc
        clone = decode_bytes(data)
        clone.author = record.author
        return clone

    def list_levels(
        self,
        *,
        page: int = 1,
        page_size: int = 20,
        author: str | None = None,
        is_water: bool | None = None,
        version: int | None = None,
        sort: LevelSort = LevelSort.PLAYS,
        reversed_order: bool = False,
        include_thumbnails: bool = True,
    ) -> LevelPage:
        """Return a page of levels.

        ``author`` matches any part of the author name, ignoring case; an
        empty value disables the filter. Levels come most played first
        unless ``sort`` picks another column, and ``reversed_order`` flips
        the direction.
        """

        if page < 1:
            raise ValueError("page must be greater than or equal to 1.")
        if page_size < 1:
            raise ValueError("page_size must be greater than or equal to 1.")

        records = self._store.list_records()
        if author:
            needle = author.casefold()
            records = [
                record for record in records if needle in record.author.casefold()
            ]
        if is_water is not None:
            records = [record for record in records if record.is_water == is_water]
        if version is not None:
            records = [record for record in records if record.version == version]
        records.sort(key=_SORT_KEYS[LevelSort(sort)], reverse=not reversed_order)

        start = (page - 1) * page_size
        visible = records[start : start + page_size]
        items = [
            self._listing_for(record)
            if include_thumbnails
            else LevelListing(record=record, thumbnail=None)
            for record in visible
        ]
        return LevelPage(
            items=items, page=page, page_size=page_size, total_items=len(records)
        )

    def download_level(self, level_id: int) -> tuple[bytes, str]:
        """Return the stored payload and its file name, counting the play."""

        with self._lock:
            record = self.get_level(level_id)
            try:
                data = self._store.read_level_bytes(record.id, record.version)
            except FileNotFoundError as exc:
                raise LevelNotFoundError(
                    f"Level {level_id} has no stored data."
                ) from exc
            self._store.update_record(replace(record, plays=record.plays + 1))
        extension = LevelFormat(record.version).file_extension
        return data, f"{record.id}.{extension}"

    def edit_level(
        self,
        level_id: int,
        *,
        name: str | None = None,
        sun: int | None = None,
        author: str | None = None,
    ) -> LevelRecord:
        """Update listing metadata, re-encoding the payload when it changes.

        Name and sun live inside the payload too, so changing either decodes
        the stored level, applies the change and writes it back as ``IZL3``.
        """

        with self._lock:
            record = self.get_level(level_id)
            updated = record
            if author is not None:
                updated = replace(
                    updated, author=_normalise_author(author, self._max_author_length)
                )

            payload_changed = (name is not None and name != record.name) or (
                sun is not None and sun != record.sun
            )
            if name is not None:
                if not name.strip():
                    raise ValueError("name must be a non-empty string")
                updated = replace(updated, name=name)
            if sun is not None:
                updated = replace(updated, sun=sun)

            if payload_changed:
                clone = self.load_clone(level_id)
                clone.name = updated.name
                clone.sun = updated.sun
                self._store.write_level_bytes(
                    record.id, encode(clone), int(LevelFormat.IZL3)
                )
                updated = replace(updated, version=int(LevelFormat.IZL3))
                logger.info("Re-encoded level %d after edit", record.id)

            self._store.update_record(updated)
        return updated

    def feature_level(self, level_id: int, featured: bool = True) -> LevelRecord:
        with self._lock:
            record = self.get_level(level_id)
            updated = replace(
                record,
                featured=featured,
                featured_at=int(self._clock()) if featured else None,
            )
            self._store.update_record(updated)
        return updated

    def toggle_favorite(self, level_id: int, client: str) -> tuple[LevelRecord, bool]:
        """Flip ``client``'s favorite on ``level_id``.

        Returns the updated record and whether the level is now favorited.
        """

        with self._lock:
            record = self.get_level(level_id)
            clients = self._store.load_favorites(level_id)
            favorited = client not in clients
            if favorited:
                clients.add(client)
            else:
                clients.discard(client)
            self._store.save_favorites(level_id, clients)
            updated = replace(record, favorites=len(clients))
            self._store.update_record(updated)
        return updated, favorited

    def report_level(self, level_id: int, reason: str | None = None) -> LevelRecord:
        """Count a player report against ``level_id`` and log its reason."""

        text = (reason or "").strip()[:MAX_REPORT_REASON_LENGTH] or "No reason provided"
        with self._lock:
            record = self.get_level(level_id)
            updated = replace(record, reports=record.reports + 1)
            self._store.update_record(updated)
        logger.warning(
            "Level %d %r by %r reported: %s", record.id, record.name, record.author, text
        )
        return updated

    def delete_level(self, level_id: int) -> LevelRecord:
        """Remove a level's record, favorites and payload.

        A payload that cannot be removed is logged and left behind; the
        level is gone from listings either way.
        """

        with self._lock:
            record = self.get_level(level_id)
            self._store.delete_record(level_id)
            try:
                self._store.delete_level_bytes(record.id, record.version)
            except (FileNotFoundError, RuntimeError) as exc:
                logger.warning("Could not delete level file for %d: %s", record.id, exc)
        logger.info("Deleted level %d %r", record.id, record.name)
        return record

    def _listing_for(self, record: LevelRecord) -> LevelListing:
        result = decode_level_from_store(self._store, record.id, record.version)
        if result.decoded is None:
            return LevelListing(record=record, thumbnail=None)
        return LevelListing(record=record, thumbnail=extract_thumbnail(result.decoded))


def _normalise_author(author: str, max_length: int) -> str:
    if not isinstance(author, str):
        raise LevelRejectedError("Invalid input", "author must be a string")
    stripped = author.strip()
    if not stripped:
        raise LevelRejectedError("Invalid input", "author must be a non-empty string")
    return stripped[:max_length]


def _whole_number(value: Any) -> int | None:
    """Return ``value`` as an int when it is a whole number, else ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


__all__ = [
    "DEFAULT_MAX_AUTHOR_LENGTH",
    "LevelListing",
    "LevelNotFoundError",
    "LevelPage",
    "LevelRejectedError",
    "LevelService",
    "LevelSort",
    "UnsupportedVersionError",
]
