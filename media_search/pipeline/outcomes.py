"""Typed results of the primary index stage.

The fallback decision is made by inspecting one of these values rather than
by catching exceptions, so "empty result" and "primary failed" stay distinct.
"""

from dataclasses import dataclass
from typing import Any, Dict, Union


@dataclass(frozen=True)
class PrimaryHit:
    """The primary index answered with at least one hit."""

    envelope: Dict[str, Any]
    outcome = "hit"


@dataclass(frozen=True)
class PrimaryEmpty:
    """The primary index answered, but with no hits."""

    envelope: Dict[str, Any]
    outcome = "empty"


@dataclass(frozen=True)
class PrimaryError:
    """The primary index could not be queried (or its breaker is open)."""

    error: Exception
    outcome = "error"


@dataclass(frozen=True)
class PrimarySkipped:
    """The primary index is disabled by configuration."""

    outcome = "skipped"


PrimaryOutcome = Union[PrimaryHit, PrimaryEmpty, PrimaryError, PrimarySkipped]
