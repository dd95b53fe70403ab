"""
Booking store persisted to a JSON file.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple

from filelock import FileLock, Timeout

from ..domain.exceptions import ConflictError, StorageError
from ..domain.models import Booking
from .memory_store import InMemoryBookingStore

logger = logging.getLogger(__name__)


class JsonBookingStore(InMemoryBookingStore):
    """
    Booking store backed by a JSON file shared between processes.

    Every operation holds an exclusive lock on ``<path>.lock`` and re-reads
    the file before touching it, so the start-time uniqueness check and the
    id counter hold across concurrent CLI runs. The file is replaced
    atomically so a crash never leaves half-written data behind.

    File layout: ``{"next_id": 3, "bookings": [...]}``. A missing file is
    treated as an empty store.
    """

    def __init__(self, path: Path, timezone: str = "UTC", lock_timeout: float = 10.0):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file_lock = FileLock(f"{self.path}.lock", timeout=lock_timeout)
        super().__init__(timezone=timezone)

        # Fail fast on a corrupt or unreadable file
        with self._transaction():
            pass

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise StorageError(f"Timed out waiting for lock on {self.path}") from exc

            try:
                self._reload()
                yield
            finally:
                self._file_lock.release()

    def _reload(self) -> None:
        next_id, bookings = self._load()

        self._bookings.clear()
        self._by_start.clear()
        self._next_id = next_id

        try:
            for booking in bookings:
                self._insert(booking)
        except ConflictError as exc:
            raise StorageError(f"Booking file {self.path} holds duplicate start times: {exc}") from exc

    def _load(self) -> Tuple[int, List[Booking]]:
        if not self.path.exists():
            logger.debug("No booking file at %s, starting empty", self.path)
            return 1, []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise StorageError(f"Invalid JSON in {self.path}: {exc}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("bookings"), list):
            raise StorageError(f"Booking file {self.path} must contain a mapping with a 'bookings' list.")

        next_id = data.get("next_id", 1)
        if not isinstance(next_id, int) or next_id < 1:
            raise StorageError(f"Malformed next_id in {self.path}: {next_id!r}")

        try:
            bookings = [Booking.from_dict(item, timezone=self.timezone) for item in data["bookings"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Malformed booking in {self.path}: {exc}") from exc

        logger.debug("Loaded %d booking(s) from %s", len(bookings), self.path)
        return next_id, bookings

    def _persist(self) -> None:
        payload = {
            "next_id": self._next_id,
            "bookings": [
                booking.to_dict()
                for booking in sorted(self._bookings.values(), key=lambda b: b.id)
            ],
        }

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc
