"""Scratch workspace lifecycle.

A conversion extracts the source archive into a private temporary directory.
The directory is removed when the conversion ends, whether it succeeded or
raised.
"""
from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, TypeVar

from .errors import FilesystemError

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "cbz_images"

R = TypeVar("R")


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
        logger.debug("removed scratch workspace %s", path)
    except FileNotFoundError:
        pass
    except OSError as e:
        # a leaked temp dir must not mask the conversion outcome
        logger.warning("could not remove scratch workspace %s: %s", path, e)


@contextmanager
def scratch_workspace(prefix: str = SCRATCH_PREFIX) -> Iterator[Path]:
    """Yield a fresh, uniquely named temporary directory.

    The directory and everything below it is removed on exit, on both the
    normal and the exception path.

    Raises:
        FilesystemError: if the directory cannot be created.
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix))
    except OSError as e:
        raise FilesystemError(f"cannot create scratch workspace: {e}") from e

    logger.debug("created scratch workspace %s", path)
    try:
        yield path
    finally:
        _remove_tree(path)


def with_scratch_workspace(body: Callable[[Path], R]) -> R:
    """Run `body` with a scratch workspace path and return its result."""
    with scratch_workspace() as path:
        return body(path)
