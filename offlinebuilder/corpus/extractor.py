"""
Tool reference extraction.

A small line scanner with two states walks the raw definition text:

    SCANNING       looking for a nested ``name:`` that may open a tool block
    IN_TOOL_BLOCK  a name was seen, waiting for a ``url:`` at the same level

Ownership follows the text top to bottom: every reference belongs to the
most recent top-level ``name:``. A block closes on dedent, on the next
sibling list item, or on any top-level key. A block that never sees a URL
emits nothing, which is how parameter entries are skipped.
"""

from enum import Enum
from typing import List, Optional

from offlinebuilder.exceptions import ParseAnomaly
from offlinebuilder.model import ToolReference

from ._lines import Line, clean_scalar, split_lines


class ScanState(Enum):
    SCANNING = "scanning"
    IN_TOOL_BLOCK = "in_tool_block"


def _value(line: Line) -> str:
    try:
        return clean_scalar(line.value)
    except ParseAnomaly:
        return line.value.strip().strip("'\"")


class ToolReferenceScanner:
    """Explicit state machine over definition lines."""

    def __init__(self, default_artifact: str = ""):
        self.artifact = default_artifact
        self.state = ScanState.SCANNING
        self.tool_name: Optional[str] = None
        self.block_indent = 0
        self.references: List[ToolReference] = []

    def _reset(self) -> None:
        self.state = ScanState.SCANNING
        self.tool_name = None
        self.block_indent = 0

    def _closes_block(self, line: Line) -> bool:
        if line.is_document_marker or line.indent == 0 and not line.is_item:
            return True
        if line.key_indent < self.block_indent:
            return True
        # a new sibling item starts a new block
        return line.is_item and line.indent < self.block_indent

    def feed(self, line: Line) -> None:
        if self.state is ScanState.IN_TOOL_BLOCK and self._closes_block(line):
            self._reset()

        if line.is_top_level_key:
            if line.key == "name":
                self.artifact = _value(line)
            return
        if line.is_document_marker or line.key is None:
            return

        if self.state is ScanState.SCANNING:
            if line.key == "name":
                name = _value(line)
                if name:
                    self.state = ScanState.IN_TOOL_BLOCK
                    self.tool_name = name
                    self.block_indent = line.key_indent
            return

        # IN_TOOL_BLOCK: only keys at the block's own level matter
        if line.key_indent != self.block_indent:
            return
        if line.key == "name":
            self.tool_name = _value(line) or self.tool_name
        elif line.key == "url":
            url = _value(line)
            if url:
                self.references.append(
                    ToolReference(
                        artifact_name=self.artifact,
                        tool_name=self.tool_name,
                        url=url,
                    )
                )
            self._reset()


def extract_tool_references(
    raw_text: str, default_artifact: str = ""
) -> List[ToolReference]:
    """Extract every (tool name, url) pair declared in a definition.

    Args:
        raw_text: Definition text, parsed or not
        default_artifact: Owner for references that appear before any
            top-level ``name:``

    Returns:
        One ToolReference per tool block with a URL, in file order. Repeated
        URLs and repeated tool names are kept as separate references.
    """
    scanner = ToolReferenceScanner(default_artifact)
    for line in split_lines(raw_text):
        scanner.feed(line)
    return scanner.references
