"""File I/O utilities for safe and atomic operations."""

import os
import tempfile
from collections.abc import Generator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def atomic_write(
    path: str | Path,
    mode: str = "w",
    encoding: str | None = "utf-8",
    **kwargs: Any,
) -> Generator[Any, None, None]:
    """
    Context manager for atomic file writing.

    Writes to a temporary file in the target's directory, fsyncs it, then
    renames it over the target. Readers see either the old file or the
    complete new one, never a partial write.

    Args:
        path: Target file path
        mode: File open mode (default: "w")
        encoding: File encoding (default: "utf-8"; ignored for binary modes)
        **kwargs: Additional arguments passed to open()

    Yields:
        File object opened for writing

    Example:
        with atomic_write("data/service_stack.json") as f:
            f.write(payload)
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    if "b" in mode:
        encoding = None

    temp_fd, temp_name = tempfile.mkstemp(
        dir=parent,
        prefix=f".tmp_{path.name}_",
        text="b" not in mode,
    )
    os.close(temp_fd)
    temp_path = Path(temp_name)

    try:
        with open(temp_path, mode, encoding=encoding, **kwargs) as f:
            yield f
            f.flush()
            os.fsync(f.fileno())

        temp_path.replace(path)
    except BaseException as e:
        if temp_path.exists():
            with suppress(OSError):
                temp_path.unlink()
        if isinstance(e, OSError):
            logger.error(
                "atomic_write_failed",
                path=str(path),
                error=str(e),
            )
        raise
