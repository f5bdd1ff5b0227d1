"""File operations for the transcript tree.

Writes go to a temp file in the target directory and are moved into place
with os.replace, so readers see either the old or the new file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def ensure_directory(path: Path) -> Path:
    """Ensure directory exists, creating if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_text_atomic(path: Path, content: str) -> None:
    """Write a text file atomically using temp file + rename.

    Args:
        path: Target path
        content: Text to write (UTF-8)

    Raises:
        OSError: If the directory or file cannot be written
    """
    ensure_directory(path.parent)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        # Clean up temp file on error
        try:
            os.remove(temp_path)
        except OSError:
            pass
        raise


def write_json_atomic(path: Path, data: Any) -> None:
    """Write a JSON file atomically."""
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))


def read_json(path: Path) -> Any:
    """Read and parse a JSON file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not valid JSON
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def read_text(path: Path) -> str:
    """Read a UTF-8 text file."""
    with open(path, encoding="utf-8") as f:
        return f.read()
