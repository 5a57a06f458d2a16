"""JSON / JSONL persistence helpers.

Every write either fully lands on disk or leaves the previous file in place:
whole-document writes go through a temp file + ``os.replace``; appends are
flushed and fsynced before returning.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable

from autodidact.errors import StorageError


def _fsync_dir(path: Path) -> None:
    # Directory fsync is unsupported on some platforms (Windows).
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` atomically."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        _fsync_dir(path.parent)
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


def atomic_write_json(path: Path, data: Any) -> None:
    atomic_write_text(path, json.dumps(data, indent=2))


def atomic_write_lines(path: Path, records: Iterable[dict]) -> None:
    """Rewrite a JSONL file from ``records``."""
    atomic_write_text(path, "".join(json.dumps(r) + "\n" for r in records))


def append_jsonl(path: Path, record: dict) -> None:
    """Append one record and fsync before returning."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
            f.flush()
            os.fsync(f.fileno())
    except OSError as e:
        raise StorageError(f"Failed to append to {path}: {e}") from e


def read_jsonl(path: Path) -> list[dict]:
    """Read a JSONL file, skipping blank and corrupted lines."""
    if not path.exists():
        return []

    records: list[dict] = []
    try:
        with open(path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict):
                    records.append(data)
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e
    return records


def read_json(path: Path, default: Any = None) -> Any:
    """Read a JSON document; ``default`` when missing or unparsable."""
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return default
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}") from e
