"""Per-call diagnostics for recovered conditions."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class DiagnosticKind(Enum):
    """Conditions that are reported but never fail a call."""

    UNKNOWN_FIELD = "unknown_field"
    MISSING_SUB_ELEMENT = "missing_sub_element"


@dataclass(frozen=True)
class Diagnostic:
    """A single recovered condition, with enough context to act on it."""

    kind: DiagnosticKind
    field: str
    message: str
    identifier: str | None = None


class DiagnosticLog:
    """Collects the diagnostics of one call.

    Each entry is also emitted on the module logger at WARNING.
    """

    def __init__(self) -> None:
        self.entries: list[Diagnostic] = []

    def unknown_field(self, field_name: str) -> Diagnostic:
        """Record a field name that the record type does not declare."""
        return self._add(
            Diagnostic(
                kind=DiagnosticKind.UNKNOWN_FIELD,
                field=field_name,
                message=f"field {field_name} is not exist in the schema",
            )
        )

    def missing_element(self, label: str, identifier: Any, field_name: str) -> Diagnostic:
        """Record a collection element that could not be found by id."""
        return self._add(
            Diagnostic(
                kind=DiagnosticKind.MISSING_SUB_ELEMENT,
                field=field_name,
                identifier=None if identifier is None else str(identifier),
                message=f"{label} id '{identifier}' does not exist in '{field_name}'",
            )
        )

    def _add(self, diagnostic: Diagnostic) -> Diagnostic:
        logger.warning(diagnostic.message)
        self.entries.append(diagnostic)
        return diagnostic

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.entries)


@dataclass
class CallResult:
    """Outcome of a service call: the wire-ready response plus diagnostics."""

    response: Any
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def count(self, kind: DiagnosticKind) -> int:
        """Number of diagnostics of the given kind."""
        return sum(1 for d in self.diagnostics if d.kind is kind)
