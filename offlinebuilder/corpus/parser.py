"""
Best-effort parser for artifact definitions.

Definitions are human-authored, YAML-like and often incomplete. Instead of
validating them against a schema, the parser pulls out the fields it knows
about with line-anchored matching and defaults everything else. A definition
with no name, no sources or malformed values still becomes an
ArtifactDefinition; only a file that cannot be stat'ed is a ParseFailure.

Extraction rules:
    - name / description / author: first top-level occurrence wins
    - platform: the parent directory name if it names a platform, else the
      ``supported_os`` list (one distinct platform), else Generic
    - parameters: ``name`` of every item in the top-level ``parameters`` list
    - preconditions: every ``precondition`` value anywhere, kept verbatim
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from offlinebuilder.exceptions import ParseAnomaly
from offlinebuilder.model import ArtifactDefinition, ParseFailure, Platform

from ._lines import (
    Line,
    block_body,
    clean_scalar,
    inline_list,
    is_block_indicator,
    scalar_at,
    split_lines,
)

logger = logging.getLogger(__name__)

SCALAR_FIELDS = ("name", "description", "author")
TOOL_SECTIONS = ("sources", "tools")


def _top_level_index(lines: List[Line], path: Path) -> Dict[str, int]:
    """Map each top-level key to the index of its first occurrence."""
    index: Dict[str, int] = {}
    for i, line in enumerate(lines):
        if not line.is_top_level_key:
            continue
        if line.key in index:
            logger.debug(
                f"{path}:{line.number}: duplicate top-level key '{line.key}', "
                "keeping the first"
            )
            continue
        index[line.key] = i
    return index


def _scalar_field(lines: List[Line], i: Optional[int], path: Path) -> str:
    if i is None:
        return ""
    try:
        return scalar_at(lines, i)
    except ParseAnomaly as e:
        logger.debug(f"{path}:{lines[i].number}: {e}")
        return lines[i].value.strip().strip("'\"")


def _parameter_names(lines: List[Line], i: Optional[int], path: Path) -> List[str]:
    """Collect ``name`` of each item directly in the parameters list."""
    if i is None:
        return []
    body = block_body(lines, i)
    items = [line for line in body if line.is_item]
    if not items:
        return []
    item_indent = min(line.indent for line in items)

    names = []
    current_key_indent = None
    found_in_item = False
    for line in body:
        if line.is_item and line.indent == item_indent:
            current_key_indent = line.key_indent
            found_in_item = False
        if current_key_indent is None or found_in_item:
            continue
        if line.key == "name" and line.key_indent == current_key_indent:
            try:
                value = clean_scalar(line.value)
            except ParseAnomaly as e:
                logger.debug(f"{path}:{line.number}: {e}")
                value = line.value.strip().strip("'\"")
            if value:
                names.append(value)
            found_in_item = True
    return names


def _preconditions(lines: List[Line], path: Path) -> tuple:
    """Return (found, expressions) for every ``precondition`` key."""
    found = False
    expressions = []
    for i, line in enumerate(lines):
        if line.key != "precondition":
            continue
        found = True
        try:
            expression = scalar_at(lines, i)
        except ParseAnomaly as e:
            logger.debug(f"{path}:{line.number}: {e}")
            expression = line.value.strip()
        if expression:
            expressions.append(expression)
    return found, expressions


def _supported_os(lines: List[Line], i: Optional[int]) -> List[str]:
    if i is None:
        return []
    line = lines[i]
    if line.value and not is_block_indicator(line.value):
        return inline_list(line.value)
    values = []
    for item in block_body(lines, i):
        if item.is_item:
            values.extend(inline_list(item.content[1:]))
    return values


def infer_platform(path: Path, supported_os: List[str]) -> Platform:
    """The parent directory wins; supported_os is the fallback."""
    from_directory = Platform.from_label(Path(path).parent.name)
    if from_directory is not None:
        return from_directory

    declared = {Platform.from_label(entry) for entry in supported_os}
    declared.discard(None)
    if len(declared) == 1:
        return declared.pop()
    return Platform.generic


def parse_definition(
    raw_text: str, path: Union[str, Path]
) -> Union[ArtifactDefinition, ParseFailure]:
    """Parse one definition file's text into an ArtifactDefinition.

    Args:
        raw_text: File contents as read by the loader
        path: Location of the file, used for platform inference and metadata

    Returns:
        ArtifactDefinition with defaults for anything missing, or ParseFailure
        if the file's metadata cannot be read.
    """
    path = Path(path)
    try:
        stat = path.stat()
    except OSError as e:
        return ParseFailure(path=path, reason=str(e))

    lines = split_lines(raw_text)
    top = _top_level_index(lines, path)

    scalars = {field: _scalar_field(lines, top.get(field), path) for field in SCALAR_FIELDS}
    has_precondition, preconditions = _preconditions(lines, path)

    sources_text = ""
    if "sources" in top:
        sources_text = "\n".join(line.raw for line in block_body(lines, top["sources"]))

    return ArtifactDefinition(
        name=scalars["name"],
        author=scalars["author"],
        description=scalars["description"],
        platform=infer_platform(path, _supported_os(lines, top.get("supported_os"))),
        parameters=_parameter_names(lines, top.get("parameters"), path),
        preconditions=preconditions,
        source_file=path,
        size_bytes=stat.st_size,
        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        has_sources=any(section in top for section in TOOL_SECTIONS),
        has_parameters="parameters" in top,
        has_precondition=has_precondition,
        sources_text=sources_text,
    )
