"""
JSON document persistence for GameShelf.

Writes go to a temporary file next to the target which is then renamed
over it, so a crash mid-write leaves the previous document intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import DeserializationError, SerializationError, StorageIOError

logger = logging.getLogger(__name__)


def save_document(data: Any, path: Path, indent: int = 4) -> None:
    """Serialize `data` as JSON to `path`, creating parent folders."""
    try:
        text = json.dumps(data, indent=indent)
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
    except OSError as e:
        raise StorageIOError(f"Cannot write {path}: {e}") from e

    logger.debug(f"Saved {path}")


def load_document(path: Path) -> Any:
    """Read and parse a JSON document."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StorageIOError(f"Cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise DeserializationError(f"{path}: {e}") from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DeserializationError(f"{path}: {e}") from e
