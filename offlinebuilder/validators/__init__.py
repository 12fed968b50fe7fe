"""Structural quality validation of artifact definitions.

Rules and their weights:
------------------------
    - name            +20  required (error when missing)
    - description     +15  warning when missing
    - sources/tools   +25  required (error when missing)
    - precondition    +10  advisory
    - parameters      +10  advisory
    - author          +10  advisory
    - Windows artifacts without a registry, WMI or SELECT data source get a
      warning (no points either way)

Errors make an artifact invalid. Warnings never do.
"""

from offlinebuilder.validators.quality import (
    QUALITY_RULES,
    QualityRule,
    Severity,
    ValidationResult,
    validate_definition,
)

__all__ = [
    "QUALITY_RULES",
    "QualityRule",
    "Severity",
    "ValidationResult",
    "validate_definition",
]
