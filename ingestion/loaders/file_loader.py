"""
Persist canonical batches as a JSON snapshot plus a derived CSV file,
backing up the previous snapshot before every overwrite
"""

import asyncio
import csv
import os
import re
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
from pydantic import ValidationError as PydanticValidationError

from core.config import settings
from core.exceptions import LoadError, NotFoundError
from schemas.normalized import CanonicalRecord, PersistedSnapshot, TransformBatch, utc_now
import logging

logger = logging.getLogger(__name__)


CSV_COLUMNS = [
    "id",
    "name",
    "country",
    "alphaCode",
    "stateProvince",
    "domains",
    "webPages",
    "lastUpdated",
]

# Separator for multi-valued fields inside one CSV cell
LIST_SEPARATOR = ";"

# Suffix of a backup name after "<stem>-": <timestamp>Z[-<counter>].<ext>
_BACKUP_NAME = re.compile(r"^(?P<timestamp>[0-9T-]+Z)(?:-(?P<counter>\d+))?\.[^.]+$")


class FileLoader:
    """
    Load data into the file store.

    Ensures:
    - Exactly one live snapshot, fully replaced on each save
    - A timestamped backup of the previous snapshot before it is replaced
    - A CSV rendering with a fixed column order
    - Read-back that tells "no data yet" apart from "data unreadable"
    """

    def __init__(
        self,
        data_dir: Optional[str] = None,
        backup_dir: Optional[str] = None,
        json_file: Optional[str] = None,
        csv_file: Optional[str] = None,
        backup_retention: Optional[int] = None
    ):
        self.data_dir = Path(data_dir or settings.DATA_DIR)
        self.backup_dir = Path(backup_dir or settings.BACKUP_DIR)
        self.json_path = self.data_dir / (json_file or settings.JSON_FILE)
        self.csv_path = self.data_dir / (csv_file or settings.CSV_FILE)
        self.backup_retention = (
            backup_retention if backup_retention is not None else settings.BACKUP_RETENTION
        )

    async def save(self, batch: TransformBatch) -> Dict[str, Any]:
        """
        Persist a batch as the new live snapshot.

        Args:
            batch: Validated transform batch

        Returns:
            Dictionary with records_loaded, json_path and csv_path
            (None when the batch is empty and no CSV exists)

        Raises:
            LoadError: If the snapshot or the CSV cannot be written
        """
        logger.info("Saving data to storage")

        await asyncio.to_thread(self._ensure_directories)
        await asyncio.to_thread(self._backup_existing)

        snapshot = PersistedSnapshot(**dict(batch), saved_at=utc_now())
        content = snapshot.model_dump_json(by_alias=True, indent=2)
        await asyncio.to_thread(self._write_atomic, self.json_path, content, "write_json")

        csv_path = await self.generate_csv(batch.records)
        if csv_path is None:
            # The CSV must never describe records the snapshot no longer holds
            await asyncio.to_thread(self._remove_stale_csv)

        logger.info(f"Saved {len(batch.records)} records")

        return {
            "records_loaded": len(batch.records),
            "json_path": str(self.json_path),
            "csv_path": str(csv_path) if csv_path is not None else None
        }

    async def read(self) -> Optional[PersistedSnapshot]:
        """
        Read the live snapshot.

        Returns:
            The snapshot, or None if nothing has been saved yet

        Raises:
            LoadError: If the file exists but cannot be read or parsed
        """
        return await asyncio.to_thread(self._read)

    async def read_or_raise(self) -> PersistedSnapshot:
        """Read the live snapshot, raising NotFoundError when there is none"""
        snapshot = await self.read()
        if snapshot is None:
            raise NotFoundError(
                "No data available",
                context={"path": str(self.json_path)}
            )
        return snapshot

    async def generate_csv(self, records: Sequence[CanonicalRecord]) -> Optional[Path]:
        """Write the CSV rendering; skipped entirely for an empty batch"""
        if not records:
            logger.info("No records to render, skipping CSV generation")
            return None

        await asyncio.to_thread(self._ensure_directories)
        content = self.render_csv(records)
        await asyncio.to_thread(self._write_atomic, self.csv_path, content, "write_csv")

        logger.info(f"Generated CSV with {len(records)} records")
        return self.csv_path

    @staticmethod
    def render_csv(records: Sequence[CanonicalRecord]) -> str:
        """
        Render records as CSV text.

        Lists are joined with ';', nulls become empty cells, and cells that
        contain a comma or a quote are quoted with embedded quotes doubled.
        """
        rows = []
        for record in records:
            data = record.model_dump(by_alias=True, mode="json")
            rows.append({column: _csv_cell(data.get(column)) for column in CSV_COLUMNS})

        frame = pd.DataFrame(rows, columns=CSV_COLUMNS, dtype=object)
        return frame.to_csv(
            index=False,
            quoting=csv.QUOTE_MINIMAL,
            lineterminator="\n"
        )

    def list_backups(self) -> List[Path]:
        """Backups of superseded snapshots, oldest first"""
        if not self.backup_dir.exists():
            return []
        backups = self.backup_dir.glob(f"{self.json_path.stem}-*{self.json_path.suffix}")
        return sorted(backups, key=self._backup_order)

    def _backup_order(self, path: Path) -> Tuple[str, int]:
        """(timestamp, collision counter); a bare name sorts before its -1, -2 copies"""
        match = _BACKUP_NAME.match(path.name[len(self.json_path.stem) + 1:])
        if match is None:
            return (path.name, 0)
        return (match.group("timestamp"), int(match.group("counter") or 0))

    # ------------------------------------------------------------------
    # Blocking helpers, run through asyncio.to_thread
    # ------------------------------------------------------------------

    def _ensure_directories(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LoadError(
                "Failed to create storage directories",
                context={
                    "data_dir": str(self.data_dir),
                    "backup_dir": str(self.backup_dir),
                    "operation": "mkdir"
                },
                original_exception=e
            )

    def _backup_existing(self) -> Optional[Path]:
        """Copy the live snapshot aside; failures are logged, never raised"""
        if not self.json_path.exists():
            return None

        try:
            timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
            stem, suffix = self.json_path.stem, self.json_path.suffix
            backup_path = self.backup_dir / f"{stem}-{timestamp}{suffix}"

            counter = 1
            while backup_path.exists():
                backup_path = self.backup_dir / f"{stem}-{timestamp}-{counter}{suffix}"
                counter += 1

            shutil.copyfile(self.json_path, backup_path)
            logger.info(f"Created backup {backup_path.name}")
        except OSError as e:
            logger.warning(f"Backup of {self.json_path} failed: {str(e)}")
            return None

        self._prune_backups()
        return backup_path

    def _prune_backups(self) -> None:
        if self.backup_retention <= 0:
            return

        backups = self.list_backups()
        expired = backups[:-self.backup_retention]
        for path in expired:
            try:
                path.unlink()
                logger.debug(f"Removed expired backup {path.name}")
            except OSError as e:
                logger.warning(f"Failed to remove expired backup {path.name}: {str(e)}")

    def _write_atomic(self, path: Path, content: str, operation: str) -> None:
        """Write to a temp file in the same directory, then swap it in"""
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise LoadError(
                f"Failed to write {path.name}",
                context={"path": str(path), "operation": operation},
                original_exception=e
            )

    def _remove_stale_csv(self) -> None:
        try:
            self.csv_path.unlink()
            logger.info(f"Removed {self.csv_path.name}, the new snapshot has no records")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise LoadError(
                f"Failed to remove stale {self.csv_path.name}",
                context={"path": str(self.csv_path), "operation": "remove_csv"},
                original_exception=e
            )

    def _read(self) -> Optional[PersistedSnapshot]:
        try:
            content = self.json_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise LoadError(
                "Snapshot file is unreadable",
                context={"path": str(self.json_path), "operation": "read"},
                original_exception=e
            )
        except OSError as e:
            raise LoadError(
                "Failed to read snapshot",
                context={"path": str(self.json_path), "operation": "read"},
                original_exception=e
            )

        try:
            return PersistedSnapshot.model_validate_json(content)
        except PydanticValidationError as e:
            raise LoadError(
                "Snapshot file is unreadable",
                context={"path": str(self.json_path), "operation": "read"},
                original_exception=e
            )


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return LIST_SEPARATOR.join(str(v) for v in value)
    return str(value)
