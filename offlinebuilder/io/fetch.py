"""
Download, verify and unpack resolved tools.

Every download goes to ``<file>.download`` first and is renamed into place
only once it is complete and non-empty, so a final path never holds a partial
file. Failures are returned as data (a Failed ResolvedTool); a single tool
never aborts the run.
"""

import logging
import os
import shutil
import threading
import time
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

import requests
import tqdm
from filelock import FileLock

from offlinebuilder import __version__
from offlinebuilder.constants import (
    ARCHIVE_EXTENSIONS,
    DEFAULT_BACKOFF,
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_SUFFIX,
)
from offlinebuilder.exceptions import (
    ArchiveExtractError,
    NetworkFetchError,
    WorkspaceWriteError,
)
from offlinebuilder.model import FetchStatus, ResolvedTool
from offlinebuilder.utils import sha256sum
from offlinebuilder.workflow.pool import run_parallel

logger = logging.getLogger(__name__)

HEADERS = {"User-Agent": f"offlinebuilder/{__version__}"}


def _temporary_path(final: Path) -> Path:
    return final.with_name(final.name + DOWNLOAD_SUFFIX)


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial download {path}: {e}")


def _is_nonempty_file(path: Path) -> bool:
    return path.is_file() and path.stat().st_size > 0


def download_once(url: str, destination: Path, timeout: float) -> None:
    """Stream ``url`` into ``destination``.

    ``timeout`` bounds each network read and also the attempt as a whole.

    Raises:
        requests.RequestException: on connection, timeout or HTTP errors
        NetworkFetchError: if the server returned an empty body or the
            attempt ran past its deadline
        OSError: if the file cannot be written
    """
    deadline = time.monotonic() + timeout
    with requests.get(url, stream=True, timeout=timeout, headers=HEADERS) as response:
        response.raise_for_status()
        with open(destination, "wb") as fh:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    fh.write(chunk)
                if time.monotonic() > deadline:
                    raise NetworkFetchError(url, f"timed out after {timeout}s")

    if destination.stat().st_size == 0:
        raise NetworkFetchError(url, "empty response body")


def download_with_retries(
    url: str,
    final: Path,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff: float = DEFAULT_BACKOFF,
    cancel_event: Optional[threading.Event] = None,
) -> None:
    """Download to a temporary file, then atomically move it to ``final``.

    Makes ``retries + 1`` attempts, waiting ``backoff * 2**n`` seconds between
    them. The wait is cut short if ``cancel_event`` is set.

    Raises:
        NetworkFetchError: once every attempt has failed, or on cancellation
    """
    temporary = _temporary_path(final)
    attempts = retries + 1
    last_error: Optional[Exception] = None

    for attempt in range(1, attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise NetworkFetchError(url, "cancelled")
        try:
            download_once(url, temporary, timeout)
            os.replace(temporary, final)
            return
        except (requests.RequestException, OSError, NetworkFetchError) as e:
            last_error = e
            _remove_partial(temporary)
            logger.warning(f"Attempt {attempt}/{attempts} for {url} failed: {e}")

        if attempt < attempts:
            delay = backoff * 2 ** (attempt - 1)
            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise NetworkFetchError(url, "cancelled")
            elif delay > 0:
                time.sleep(delay)

    reason = (
        last_error.reason
        if isinstance(last_error, NetworkFetchError)
        else str(last_error)
    )
    raise NetworkFetchError(url, f"{reason} (after {attempts} attempts)")


def extract_archive(archive: Path, target: Path) -> Path:
    """Unpack a zip archive into ``target``, replacing earlier contents.

    Raises:
        ArchiveExtractError: if the archive is corrupt or a member would land
            outside ``target``
    """
    root = target.resolve()

    try:
        if target.exists():
            shutil.rmtree(target)
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                destination = (root / member).resolve()
                if destination != root and root not in destination.parents:
                    raise ArchiveExtractError(
                        archive, f"member '{member}' escapes the extraction directory"
                    )
            target.mkdir(parents=True, exist_ok=True)
            zf.extractall(target)
    except ArchiveExtractError:
        shutil.rmtree(target, ignore_errors=True)
        raise
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
        shutil.rmtree(target, ignore_errors=True)
        raise ArchiveExtractError(archive, str(e)) from e

    return target


def is_archive(file_name: str) -> bool:
    return file_name.lower().endswith(ARCHIVE_EXTENSIONS)


def fetch_tool(
    tool: ResolvedTool,
    tools_dir: Path,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff: float = DEFAULT_BACKOFF,
    refresh: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> ResolvedTool:
    """Fetch one tool into ``tools_dir`` and return its updated copy.

    A verified file already in place is reused unless ``refresh`` is set.
    Extraction problems are recorded as warnings and leave the tool Verified,
    since the raw archive is still usable.
    """
    final = tools_dir / tool.file_name

    def failed(reason: str) -> ResolvedTool:
        logger.warning(reason)
        return tool.with_status(
            FetchStatus.failed, local_path=None, extracted_path=None, error=reason
        )

    try:
        lock = FileLock(final.with_name(final.name + ".lock"))
        lock.acquire()
    except OSError as e:
        return failed(f"Cannot lock {final}: {e}")

    try:
        if not refresh and _is_nonempty_file(final):
            logger.debug(f"Reusing {final.name} for {tool.url}")
        else:
            logger.debug(f"Downloading {tool.url}")
            tool = tool.with_status(FetchStatus.downloading)
            try:
                download_with_retries(
                    tool.url, final, timeout, retries, backoff, cancel_event
                )
            except NetworkFetchError as e:
                return failed(str(e))

        try:
            tool = tool.with_status(
                FetchStatus.verified,
                local_path=final,
                sha256=sha256sum(final),
                size_bytes=final.stat().st_size,
                error=None,
            )
        except OSError as e:
            return failed(f"Cannot verify {final}: {e}")

        if is_archive(tool.file_name):
            try:
                extracted = extract_archive(final, tools_dir / tool.archive_stem)
                tool = tool.model_copy(update={"extracted_path": extracted})
            except ArchiveExtractError as e:
                logger.warning(str(e))
                tool = tool.model_copy(
                    update={"extracted_path": None, "warnings": [*tool.warnings, str(e)]}
                )
    finally:
        lock.release()

    return tool


def fetch_all(
    tools: Sequence[ResolvedTool],
    tools_dir: Path,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff: float = DEFAULT_BACKOFF,
    refresh: bool = False,
    cancel_event: Optional[threading.Event] = None,
    verbose: bool = False,
) -> List[ResolvedTool]:
    """Fetch every tool concurrently; failures stay isolated per tool.

    Raises:
        WorkspaceWriteError: if ``tools_dir`` cannot be created
    """
    try:
        tools_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkspaceWriteError(tools_dir, str(e)) from e

    with tqdm.tqdm(
        total=len(tools), desc="Fetching tools", delay=5, disable=not verbose
    ) as bar:

        def fetch(tool: ResolvedTool) -> ResolvedTool:
            try:
                return fetch_tool(
                    tool, tools_dir, timeout, retries, backoff, refresh, cancel_event
                )
            except Exception as e:
                logger.error(f"Unexpected error fetching {tool.url}: {e}")
                return tool.with_status(
                    FetchStatus.failed,
                    local_path=None,
                    extracted_path=None,
                    error=f"unexpected error: {e}",
                )
            finally:
                bar.update(1)

        def cancelled(tool: ResolvedTool) -> ResolvedTool:
            bar.update(1)
            return tool.with_status(
                FetchStatus.failed, error="cancelled before download started"
            )

        return run_parallel(
            fetch, tools, concurrency, cancel_event=cancel_event, on_cancel=cancelled
        )
