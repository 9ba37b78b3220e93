"""Delimited-text persistence for the index table."""

from __future__ import annotations

import csv
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Final

from refsheet.exceptions import ReconciliationError, ReconciliationErrorKind
from refsheet.indexer.extractor import DeclKind, IndexEntry

HEADER: Final[tuple[str, str, str]] = ("File", "Item Type", "Name")


def read_table(path: Path) -> Iterator[IndexEntry]:
    """Lazily read entries from a persisted index table.

    Args:
        path: Location of an existing table.

    Yields:
        One IndexEntry per data row, in file order.

    Raises:
        ReconciliationError: With kind CORRUPT_INDEX if the file cannot be
            decoded, the header differs from HEADER, or a row is malformed.
    """
    try:
        with path.open("r", encoding="utf-8", newline="") as fh:
            reader = csv.reader(fh)
            header = next(reader, None)
            if header is None or tuple(header) != HEADER:
                raise _corrupt(path, f"expected header {','.join(HEADER)!r}, got {header!r}")
            for row in reader:
                if len(row) != len(HEADER):
                    raise _corrupt(
                        path, f"line {reader.line_num}: expected 3 columns, got {len(row)}"
                    )
                file, kind, name = row
                try:
                    decl_kind = DeclKind.parse(kind)
                except ValueError:
                    raise _corrupt(
                        path, f"line {reader.line_num}: unknown item type {kind!r}"
                    ) from None
                yield IndexEntry(file, decl_kind, name)
    except (UnicodeDecodeError, csv.Error) as exc:
        raise _corrupt(path, str(exc)) from exc
    except OSError as exc:
        raise _corrupt(path, f"cannot read: {exc}") from exc


def write_table(path: Path, entries: Iterable[IndexEntry]) -> int:
    """Write the header and entries, atomically replacing any previous table.

    Rows go to a temporary file next to the destination which is renamed
    into place only after it has been flushed to disk.

    Args:
        path: Destination of the table.
        entries: Entries in their final order.

    Returns:
        The number of data rows written.

    Raises:
        ReconciliationError: OUTPUT_UNAVAILABLE if the parent directory cannot
            be created, WRITE_FAILED if writing or renaming fails.
    """
    parent = path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ReconciliationError(
            ReconciliationErrorKind.OUTPUT_UNAVAILABLE, str(parent), f"cannot create: {exc}"
        ) from exc

    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=parent)
    except OSError as exc:
        raise ReconciliationError(
            ReconciliationErrorKind.OUTPUT_UNAVAILABLE, str(parent), f"not writable: {exc}"
        ) from exc

    count = 0
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh, lineterminator="\n")
            writer.writerow(HEADER)
            for entry in entries:
                writer.writerow(entry.row())
                count += 1
            fh.flush()
            os.fsync(fh.fileno())
        # mkstemp creates 0600 files
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except (OSError, UnicodeEncodeError) as exc:
        raise ReconciliationError(
            ReconciliationErrorKind.WRITE_FAILED, str(path), f"cannot write: {exc}"
        ) from exc
    finally:
        Path(tmp_name).unlink(missing_ok=True)
    return count


def _corrupt(path: Path, detail: str) -> ReconciliationError:
    return ReconciliationError(ReconciliationErrorKind.CORRUPT_INDEX, str(path), detail)
