from __future__ import annotations
import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple

from settings import Settings, get_settings


@dataclass(frozen=True, slots=True)
class Cell:
    """One (row key, column, value) triple as written to the store."""

    row_key: str
    column: str
    value: Any


class ColumnStoreTable:
    """In-memory wide-row table with optional JSON persistence.

    Rows are kept sorted by key on scan so prefix scans return rows in key order.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._rows: Dict[str, Dict[str, Any]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_cells(self, cells: Iterable[Cell]) -> int:
        pending = list(cells)
        with self._lock:
            for cell in pending:
                self._rows.setdefault(cell.row_key, {})[cell.column] = cell.value
            if pending:
                self._persist()
        return len(pending)

    def get_row(
        self, row_key: str, columns: Optional[Sequence[str]] = None
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(row_key)
            if row is None:
                return None
            return self._project(row, columns)

    def scan(
        self,
        prefix: str = "",
        columns: Optional[Sequence[str]] = None,
    ) -> Iterator[Tuple[str, Dict[str, Any]]]:
        """Yield ``(row_key, cells)`` for rows under ``prefix`` that hold any requested column."""

        with self._lock:
            snapshot = [
                (key, self._project(row, columns))
                for key, row in sorted(self._rows.items())
                if key.startswith(prefix)
            ]
        for key, row in snapshot:
            if row:
                yield key, row

    def delete_columns(self, row_key: str, columns: Sequence[str]) -> int:
        """Drop ``columns`` from a row; a row left without cells is removed."""
        with self._lock:
            row = self._rows.get(row_key)
            if row is None:
                return 0
            removed = 0
            for name in columns:
                if name in row:
                    del row[name]
                    removed += 1
            if not row:
                del self._rows[row_key]
            if removed:
                self._persist()
            return removed

    def row_count(self) -> int:
        with self._lock:
            return len(self._rows)

    @staticmethod
    def _project(row: Dict[str, Any], columns: Optional[Sequence[str]]) -> Dict[str, Any]:
        if columns is None:
            return dict(row)
        return {name: row[name] for name in columns if name in row}

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._rows, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for row_key, row in data.items():
            if isinstance(row, dict):
                self._rows[row_key] = dict(row)


def _build_table(name: str, path: Optional[str]) -> ColumnStoreTable:
    persistence = Path(path) if path else None
    return ColumnStoreTable(name=name, persistence_path=persistence)


@lru_cache
def build_raw_table(settings: Optional[Settings] = None) -> ColumnStoreTable:
    settings = settings or get_settings()
    return _build_table(settings.raw_table_name, settings.raw_table_persistence_path)


@lru_cache
def build_summary_table(settings: Optional[Settings] = None) -> ColumnStoreTable:
    settings = settings or get_settings()
    return _build_table(settings.summary_table_name, settings.summary_table_persistence_path)
