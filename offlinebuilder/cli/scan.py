"""Scan command: parse, resolve and score a corpus without downloading"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import click

from offlinebuilder.cli.progress import SummaryDisplay
from offlinebuilder.cli.utils.logging import logger
from offlinebuilder.config import load_fetch_settings
from offlinebuilder.manifest import build_manifest, manifest_to_csv, manifest_to_json
from offlinebuilder.workflow.pipeline import resolve_version, scan_corpus, validate_corpus


@click.command("scan")
@click.option(
    "--source",
    "-s",
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory tree of artifact definitions.",
    envvar="OFB_SOURCE",
)
@click.option(
    "--concurrency",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Parallel parse jobs.",
    envvar="OFB_CONCURRENCY",
)
@click.option(
    "--json",
    "json_file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the JSON manifest to this file.",
)
@click.option(
    "--tools-csv",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write the tool list as CSV to this file.",
)
@click.option(
    "--min-score",
    type=click.IntRange(0, 100),
    default=None,
    help="Exit with status 1 if any artifact scores lower.",
)
@click.pass_context
def scan(ctx, source, concurrency, json_file, tools_csv, min_score):
    """Score artifact definitions and list the tools they need."""
    concurrency = concurrency or load_fetch_settings().concurrency

    corpus = scan_corpus(source, concurrency)
    records = validate_corpus(corpus.parsed, concurrency)

    try:
        version = resolve_version(None, source)
    except ValueError:
        version = "unversioned"

    manifest = build_manifest(
        records,
        corpus.tools,
        version=version,
        generated_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        skipped_files=corpus.skipped_files,
        duplicate_names=corpus.duplicate_names,
    )

    display = SummaryDisplay()
    display.artifact_scores(manifest.artifacts)
    display.manifest_summary(manifest)

    for path, content in (
        (json_file, manifest_to_json(manifest) if json_file else None),
        (tools_csv, manifest_to_csv(manifest) if tools_csv else None),
    ):
        if path is None:
            continue
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error(f"Error: could not write {path}: {e}")
            sys.exit(1)
        display.status(f"Wrote {path}")

    if min_score is not None:
        below = [e for e in manifest.artifacts if e.validation_score < min_score]
        if below:
            display.error(f"{len(below)} artifacts score below {min_score}")
            ctx.exit(1)
