"""Loading, parsing and tool reference extraction for definition corpora."""

from offlinebuilder.corpus.extractor import ToolReferenceScanner, extract_tool_references
from offlinebuilder.corpus.loader import find_definition_files, load_definitions
from offlinebuilder.corpus.parser import infer_platform, parse_definition

__all__ = [
    "ToolReferenceScanner",
    "extract_tool_references",
    "find_definition_files",
    "load_definitions",
    "infer_platform",
    "parse_definition",
]
