# quality.py
#
# Structural quality scoring for artifact definitions.
# Each rule is a small handler returning a `returns` Result; the validator
# folds the results into one ValidationResult per artifact.

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, TypeAlias

from returns.result import Failure, Result, Success

from offlinebuilder import constants
from offlinebuilder.exceptions import (
    HeuristicWarning,
    MissingFieldError,
    MissingSectionError,
    QualityFinding,
)
from offlinebuilder.model import ArtifactDefinition, Platform


class Severity(Enum):
    """What a failed rule does to the result."""

    ERROR = "error"  # invalidates the artifact
    WARNING = "warning"  # reported, validity unaffected
    ADVISORY = "advisory"  # only the points are lost


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one artifact definition."""

    artifact_name: str
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    score: int = 0


RuleResult: TypeAlias = Result[str, QualityFinding]
RuleHandler: TypeAlias = Callable[[ArtifactDefinition], RuleResult]


@dataclass(frozen=True, slots=True)
class QualityRule:
    name: str
    points: int
    severity: Severity
    handler: RuleHandler = field(repr=False)


# Rule handlers


def _has_name(definition: ArtifactDefinition) -> RuleResult:
    if definition.name.strip():
        return Success("Name present.")
    return Failure(MissingFieldError("Missing required field 'name'"))


def _has_description(definition: ArtifactDefinition) -> RuleResult:
    if definition.description.strip():
        return Success("Description present.")
    return Failure(MissingFieldError("Missing description"))


def _has_sources(definition: ArtifactDefinition) -> RuleResult:
    if definition.has_sources:
        return Success("Sources section present.")
    return Failure(
        MissingSectionError("Missing required 'sources' or 'tools' section")
    )


def _has_precondition(definition: ArtifactDefinition) -> RuleResult:
    if definition.has_precondition:
        return Success("Precondition present.")
    return Failure(MissingSectionError("No precondition"))


def _has_parameters(definition: ArtifactDefinition) -> RuleResult:
    if definition.has_parameters:
        return Success("Parameters block present.")
    return Failure(MissingSectionError("No parameters block"))


def _has_author(definition: ArtifactDefinition) -> RuleResult:
    if definition.author.strip():
        return Success("Author present.")
    return Failure(MissingFieldError("No author"))


WINDOWS_DATA_SOURCE = re.compile(
    r"\b(?:registry|hklm|hkey_\w+|hkcu|wmi|wmi_\w+|select)\b", re.IGNORECASE
)


def _windows_data_source(definition: ArtifactDefinition) -> RuleResult:
    if definition.platform != Platform.windows:
        return Success("Not a Windows artifact.")
    haystack = "\n".join([definition.sources_text, *definition.preconditions])
    if WINDOWS_DATA_SOURCE.search(haystack):
        return Success("Windows data source found.")
    return Failure(
        HeuristicWarning(
            "Windows artifact without a recognizable data source "
            "(registry, WMI or SELECT query)"
        )
    )


# Rule registry, applied in order. Points add up to at most MAX_SCORE.

QUALITY_RULES: tuple[QualityRule, ...] = (
    QualityRule("name", constants.SCORE_NAME, Severity.ERROR, _has_name),
    QualityRule(
        "description", constants.SCORE_DESCRIPTION, Severity.WARNING, _has_description
    ),
    QualityRule("sources", constants.SCORE_SOURCES, Severity.ERROR, _has_sources),
    QualityRule(
        "precondition",
        constants.SCORE_PRECONDITION,
        Severity.ADVISORY,
        _has_precondition,
    ),
    QualityRule(
        "parameters", constants.SCORE_PARAMETERS, Severity.ADVISORY, _has_parameters
    ),
    QualityRule("author", constants.SCORE_AUTHOR, Severity.ADVISORY, _has_author),
    QualityRule("windows_data_source", 0, Severity.WARNING, _windows_data_source),
)


def validate_definition(
    definition: ArtifactDefinition,
    rules: tuple[QualityRule, ...] = QUALITY_RULES,
) -> ValidationResult:
    """Score one definition against the rule set.

    The result only depends on the definition's content, so identical input
    always yields an identical result.
    """
    errors: list[str] = []
    warnings: list[str] = []
    score = 0

    for rule in rules:
        result = rule.handler(definition)
        if isinstance(result, Success):
            score += rule.points
            continue

        message = str(result.failure())
        if rule.severity is Severity.ERROR:
            errors.append(message)
        elif rule.severity is Severity.WARNING:
            warnings.append(message)

    return ValidationResult(
        artifact_name=definition.display_name,
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        score=min(score, constants.MAX_SCORE),
    )
