"""Discover and read artifact definition files."""

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, Tuple

from offlinebuilder.constants import DEFINITION_EXTENSIONS
from offlinebuilder.exceptions import FileReadError

logger = logging.getLogger(__name__)


def find_definition_files(
    root: Path, extensions: Sequence[str] = DEFINITION_EXTENSIONS
) -> Iterator[Path]:
    """Yield definition files below ``root`` in a stable (sorted) order."""
    suffixes = {ext.lower() for ext in extensions}
    for path in sorted(Path(root).rglob("*")):
        if path.suffix.lower() in suffixes and path.is_file():
            yield path


def load_definitions(
    root: Path,
    extensions: Sequence[str] = DEFINITION_EXTENSIONS,
    on_error: Optional[Callable[[FileReadError], None]] = None,
) -> Iterator[Tuple[Path, str]]:
    """Lazily yield ``(path, raw_text)`` for every definition file under root.

    Unreadable files (permissions, bad encoding) are logged, passed to
    ``on_error`` if given, and skipped. Nothing is cached between calls, so
    calling again re-reads the filesystem.
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Definition directory not found: {root}")

    for path in find_definition_files(root, extensions):
        try:
            raw_text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            error = FileReadError(path, str(e))
            logger.warning(f"Skipping definition: {error}")
            if on_error is not None:
                on_error(error)
            continue
        yield path, raw_text
