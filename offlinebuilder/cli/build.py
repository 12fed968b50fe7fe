"""Build command producing the offline package"""

import sys
import threading
from pathlib import Path

import click

from offlinebuilder.archive import COMPRESSION_METHODS
from offlinebuilder.cli.progress import SummaryDisplay
from offlinebuilder.cli.utils.logging import logger
from offlinebuilder.config import load_compression, load_fetch_settings
from offlinebuilder.constants import SUMMARY_TXT
from offlinebuilder.exceptions import PackageError, WorkspaceWriteError
from offlinebuilder.workflow.pipeline import BuildOptions, build_package, resolve_version

from .debug import is_debug


@click.command("build")
@click.option(
    "--source",
    "-s",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory tree of artifact definitions.",
    envvar="OFB_SOURCE",
)
@click.option(
    "--version",
    "-v",
    "version_tag",
    type=str,
    default=None,
    help="Corpus version tag. Defaults to the VERSION file in the source directory.",
    envvar="OFB_VERSION",
)
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the workspace and the final archive.",
    envvar="OFB_OUTPUT",
)
@click.option(
    "--concurrency",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Parallel parse and download jobs.",
    envvar="OFB_CONCURRENCY",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Timeout in seconds for each download attempt.",
    envvar="OFB_TIMEOUT",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="Extra attempts for a failing download.",
    envvar="OFB_RETRIES",
)
@click.option(
    "--binaries",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory of platform executables to ship in binaries/.",
)
@click.option(
    "--no-fetch",
    is_flag=True,
    default=False,
    help="Do not download tools, list them as pending.",
)
@click.option(
    "--refresh",
    is_flag=True,
    default=False,
    help="Download tools again even if a verified copy exists.",
)
@click.option(
    "--compression",
    type=click.Choice(sorted(COMPRESSION_METHODS), case_sensitive=False),
    default=None,
    help="Archive compression method.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file to use instead of the user default.",
)
@click.pass_context
def build(
    ctx,
    source,
    version_tag,
    output,
    concurrency,
    timeout,
    retries,
    binaries,
    no_fetch,
    refresh,
    compression,
    config_file,
):
    """Resolve, fetch and package all tools referenced by a definition corpus."""
    settings = load_fetch_settings(config_file)

    compression = (compression or load_compression(config_file)).lower()
    if compression not in COMPRESSION_METHODS:
        raise click.BadParameter(
            f"unknown compression '{compression}' in configuration",
            param_hint="--compression",
        )

    try:
        version = resolve_version(version_tag, source)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--version")

    options = BuildOptions(
        source=source,
        version=version,
        output=output,
        concurrency=concurrency or settings.concurrency,
        timeout=timeout or settings.timeout,
        retries=settings.retries if retries is None else retries,
        backoff=settings.backoff,
        fetch=not no_fetch,
        refresh=refresh,
        binaries=binaries,
        compression=compression,
        verbose=is_debug(ctx),
    )

    cancel_event = threading.Event()
    try:
        result = build_package(options, cancel_event=cancel_event)
    except KeyboardInterrupt:
        logger.error("Build interrupted.")
        sys.exit(130)
    except (WorkspaceWriteError, PackageError) as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    display = SummaryDisplay()
    display.section(f"Offline package v{version}")
    display.manifest_summary(result.manifest)
    display.failed_tools(result.manifest)

    if result.failed_tools or result.invalid_artifacts:
        display.warning(
            f"{result.failed_tools} tool downloads failed and "
            f"{result.invalid_artifacts} artifacts are invalid, "
            f"see {result.workspace / SUMMARY_TXT}"
        )
    for step in result.package.skipped_steps:
        display.warning(f"Skipped packaging step: {step}")

    display.success(f"Created archive: {result.archive_path}")
