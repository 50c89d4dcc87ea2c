import csv
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List

from fda_intel.errors import PersistenceError

logger = logging.getLogger(__name__)

_KEY_CHARS = set("abcdefghijklmnopqrstuvwxyz0123456789_-")


def read_csv(path: Path) -> List[Dict[str, str]]:
    if not path.exists():
        return []
    with path.open("r", newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        return [row for row in reader if any((value or "").strip() for value in row.values())]


def write_csv(
    path: Path,
    rows: Iterable[Dict[str, Any]],
    fieldnames: List[str],
    append: bool = False,
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    needs_header = not append or not path.exists() or path.stat().st_size == 0
    with path.open("a" if append else "w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames, extrasaction="ignore")
        if needs_header:
            writer.writeheader()
        writer.writerows(rows)


def append_csv(path: Path, rows: Iterable[Dict[str, Any]], fieldnames: List[str]) -> None:
    write_csv(path, rows, fieldnames, append=True)


class JsonDocumentStore:
    """Key -> JSON document store backed by one file per key."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key or not set(key) <= _KEY_CHARS:
            raise ValueError(f"Invalid document key: {key!r}")
        return self.root / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError) as exc:
            logger.error("Unreadable document %s at %s: %s", key, path, exc)
            return default

    def put(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(key, str(exc) or exc.__class__.__name__) from exc
