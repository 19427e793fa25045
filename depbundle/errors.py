"""Error taxonomy and diagnostic findings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Level = Literal["error", "warning", "info"]
Category = Literal["ingestion", "structural", "invalid-edge", "excluded"]


class DepbundleError(Exception):
    """Base class for depbundle errors.

    ``rule`` is a short identifier for the failed check (``relationship-group-size``,
    ``duplicate-id``, ...) and ``subject`` names the offending record or id.
    """

    category: Category = "ingestion"
    level: Level = "error"

    def __init__(self, message: str, *, rule: str, subject: str | None = None):
        super().__init__(message)
        self.message = message
        self.rule = rule
        self.subject = subject


class IngestionError(DepbundleError):
    """A raw record could not be turned into nodes or edges."""

    category: Category = "ingestion"


class InvalidEdgeError(DepbundleError):
    """An edge is degenerate (self-referencing or without a usable path)."""

    category: Category = "invalid-edge"
    level: Level = "warning"


class StructuralError(DepbundleError):
    """The node set does not form a strict rooted tree."""

    category: Category = "structural"


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal finding."""

    level: Level
    rule: str
    category: Category
    message: str
    subject: str | None = None

    @classmethod
    def from_error(cls, exc: DepbundleError) -> "Diagnostic":
        return cls(
            level=exc.level,
            rule=exc.rule,
            category=exc.category,
            message=exc.message,
            subject=exc.subject,
        )

    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "rule": self.rule,
            "category": self.category,
            "message": self.message,
            "subject": self.subject,
        }

    def __str__(self) -> str:
        loc = f" {self.subject}" if self.subject else ""
        return f"{self.level.upper()}: [{self.rule}]{loc} - {self.message}"
