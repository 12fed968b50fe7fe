"""Line-level helpers shared by the parser and the tool reference extractor.

Definitions are YAML-like but frequently not valid YAML, so they are read
line by line instead of being loaded as documents.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

import yaml

from offlinebuilder.exceptions import ParseAnomaly

_KEY_RE = re.compile(r"^(?P<key>[A-Za-z_][\w\-]*)\s*:(?:\s+(?P<value>.*))?$")
_BLOCK_INDICATORS = {"|", ">", "|-", ">-", "|+", ">+"}


@dataclass(frozen=True)
class Line:
    """One non-blank, non-comment line of a definition."""

    number: int
    raw: str
    indent: int
    content: str
    is_item: bool
    key: Optional[str]
    value: str
    key_indent: int

    @property
    def is_top_level_key(self) -> bool:
        return self.indent == 0 and not self.is_item and self.key is not None

    @property
    def is_document_marker(self) -> bool:
        return self.indent == 0 and self.content in ("---", "...")


def split_lines(raw_text: str) -> List[Line]:
    """Split raw text into structured lines, dropping blanks and comments."""
    lines = []
    for number, raw in enumerate(raw_text.splitlines(), start=1):
        expanded = raw.expandtabs(4).rstrip()
        content = expanded.lstrip()
        if not content or content.startswith("#"):
            continue
        indent = len(expanded) - len(content)

        is_item = content == "-" or content.startswith("- ")
        key_content = content[1:].lstrip() if is_item else content
        key_indent = indent + (len(content) - len(key_content))

        match = _KEY_RE.match(key_content)
        key = match.group("key") if match else None
        value = (match.group("value") or "").strip() if match else ""

        lines.append(
            Line(
                number=number,
                raw=expanded,
                indent=indent,
                content=content,
                is_item=is_item,
                key=key,
                value=value,
                key_indent=key_indent,
            )
        )
    return lines


def is_block_indicator(value: str) -> bool:
    return value in _BLOCK_INDICATORS


def block_body(lines: List[Line], index: int) -> List[Line]:
    """Return the lines nested under the key at ``lines[index]``.

    Sequence items written at the key's own indent (``key:\\n- item``) count
    as nested, as they do in YAML.
    """
    parent = lines[index]
    body = []
    for line in lines[index + 1 :]:
        if line.is_document_marker:
            break
        nested = line.indent > parent.key_indent or (
            line.is_item and line.indent == parent.key_indent
        )
        if not nested:
            break
        body.append(line)
    return body


def block_scalar(indicator: str, body: List[Line]) -> str:
    """Assemble a literal (``|``) or folded (``>``) block scalar."""
    if not body:
        return ""
    margin = min(line.indent for line in body)
    parts = [line.raw[margin:] for line in body]
    if indicator.startswith(">"):
        return " ".join(part.strip() for part in parts).strip()
    return "\n".join(parts).strip()


def clean_scalar(value: str) -> str:
    """Strip quotes and trailing comments from an inline scalar.

    Raises:
        ParseAnomaly: if a quoted scalar is not terminated on the same line.
    """
    value = value.strip()
    if not value:
        return ""

    quote = value[0]
    if quote in ("'", '"'):
        end = value.rfind(quote)
        if end <= 0:
            raise ParseAnomaly(f"unterminated quoted value: {value}")
        try:
            # decodes escapes like \t or \u00e9 the way YAML does
            decoded = yaml.safe_load(value[: end + 1])
        except yaml.YAMLError:
            decoded = None
        if isinstance(decoded, str):
            return decoded
        inner = value[1:end]
        if quote == '"':
            return inner.replace('\\"', '"')
        return inner.replace("''", "'")

    comment = value.find(" #")
    if comment != -1:
        value = value[:comment]
    return value.strip()


def scalar_at(lines: List[Line], index: int) -> str:
    """Value of the key at ``lines[index]``, following block scalars."""
    line = lines[index]
    if is_block_indicator(line.value):
        return block_scalar(line.value, block_body(lines, index))
    return clean_scalar(line.value)


def inline_list(value: str) -> List[str]:
    """Parse a flow sequence like ``[a, 'b']`` or a single bare scalar."""
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        items = value[1:-1].split(",")
    else:
        items = [value]
    result = []
    for item in items:
        try:
            cleaned = clean_scalar(item)
        except ParseAnomaly:
            cleaned = item.strip().strip("'\"")
        if cleaned:
            result.append(cleaned)
    return result
