from typing import Final

# Artifact definitions are YAML-like text files
DEFINITION_EXTENSIONS: Final[tuple] = (".yaml", ".yml")

# Fetched files ending in one of these are unpacked next to the raw archive
ARCHIVE_EXTENSIONS: Final[tuple] = (".zip",)

# Suffix for in-flight downloads. Never shipped in a package.
DOWNLOAD_SUFFIX: Final[str] = ".download"

# Workspace layout
BINARIES_DIR: Final[str] = "binaries"
DEFINITIONS_DIR: Final[str] = "artifact_definitions"
TOOLS_DIR: Final[str] = "external_tools"
TOOLS_CSV: Final[str] = "external_tools_manifest.csv"
MANIFEST_JSON: Final[str] = "offline_builder_manifest.json"
SUMMARY_TXT: Final[str] = "offline_builder_summary.txt"
BUILD_LOG: Final[str] = "build.log"
VERSION_FILE: Final[str] = "VERSION"

PACKAGE_PREFIX: Final[str] = "offline_builder_v"

# Zip members get a fixed timestamp so identical workspaces give identical archives
ARCHIVE_DATE_TIME: Final[tuple] = (1980, 1, 1, 0, 0, 0)

# Quality score weights
SCORE_NAME: Final[int] = 20
SCORE_DESCRIPTION: Final[int] = 15
SCORE_SOURCES: Final[int] = 25
SCORE_PRECONDITION: Final[int] = 10
SCORE_PARAMETERS: Final[int] = 10
SCORE_AUTHOR: Final[int] = 10
MAX_SCORE: Final[int] = 100

# Fetch defaults, overridable through config file, environment or CLI
DEFAULT_CONCURRENCY: Final[int] = 4
DEFAULT_TIMEOUT: Final[float] = 30.0
DEFAULT_RETRIES: Final[int] = 3
DEFAULT_BACKOFF: Final[float] = 1.0
DOWNLOAD_CHUNK_SIZE: Final[int] = 64 * 1024

DEFAULT_COMPRESSION: Final[str] = "deflated"
