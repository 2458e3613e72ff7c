"""
Leveled validation findings produced by the FormXML validator and grid audit.

A ValidationResult is an immutable, ordered collection of diagnostics.
Validity is derived from the diagnostics every time it is asked for, so a
result can never disagree with its own content.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional

_QUOTED_RE = re.compile(r"'([^']*)'")


class ValidationLevel(str, Enum):
    ERROR = "Error"
    WARNING = "Warning"


def split_message(message: str) -> tuple[str, Optional[str]]:
    """Split *message* into a fixed template and its variable (quoted) parts.

    "Element 'cell': The attribute 'id' is required but missing." becomes
    ("Element '*': The attribute '*' is required but missing.", "cell, id").
    Messages without quoted names are returned whole as the fixed part.
    """
    names = _QUOTED_RE.findall(message)
    if not names:
        return message, None
    return _QUOTED_RE.sub("'*'", message), ", ".join(names)


@dataclass(frozen=True)
class ValidationDiagnostic:
    level: ValidationLevel
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    path: Optional[str] = None  # XPath of the offending node, when known
    fixed_part: Optional[str] = None
    variable_part: Optional[str] = None

    @classmethod
    def create(
        cls,
        level: ValidationLevel,
        message: str,
        *,
        line: Optional[int] = None,
        column: Optional[int] = None,
        path: Optional[str] = None,
    ) -> "ValidationDiagnostic":
        """Build a diagnostic, deriving fixed/variable parts from *message*.

        Non-positive line or column numbers are reported by some engines when
        the position is unknown; they are stored as None.
        """
        fixed, variable = split_message(message)
        return cls(
            level=level,
            message=message,
            line=line if line and line > 0 else None,
            column=column if column and column > 0 else None,
            path=path or None,
            fixed_part=fixed,
            variable_part=variable,
        )

    @classmethod
    def error(cls, message: str, **location) -> "ValidationDiagnostic":
        return cls.create(ValidationLevel.ERROR, message, **location)

    @classmethod
    def warning(cls, message: str, **location) -> "ValidationDiagnostic":
        return cls.create(ValidationLevel.WARNING, message, **location)

    @property
    def location(self) -> Optional[str]:
        """Human-readable position: "line 3, column 7", the XPath, or None."""
        if self.line is not None:
            text = f"line {self.line}"
            if self.column is not None:
                text += f", column {self.column}"
            return text
        return self.path

    def __str__(self) -> str:
        where = self.location
        prefix = f"{self.level.value}"
        if where:
            prefix += f" ({where})"
        return f"{prefix}: {self.message}"


class ValidationResult:
    """Ordered, read-only sequence of ValidationDiagnostic records."""

    __slots__ = ("_diagnostics",)

    def __init__(self, diagnostics: Iterable[ValidationDiagnostic] = ()):
        self._diagnostics: tuple[ValidationDiagnostic, ...] = tuple(diagnostics)

    def __iter__(self) -> Iterator[ValidationDiagnostic]:
        return iter(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __getitem__(self, index: int) -> ValidationDiagnostic:
        return self._diagnostics[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationResult):
            return NotImplemented
        return self._diagnostics == other._diagnostics

    def __hash__(self) -> int:
        return hash(self._diagnostics)

    def __repr__(self) -> str:
        return f"ValidationResult({list(self._diagnostics)!r})"

    @property
    def diagnostics(self) -> tuple[ValidationDiagnostic, ...]:
        return self._diagnostics

    @property
    def errors(self) -> list[ValidationDiagnostic]:
        return [d for d in self._diagnostics if d.level is ValidationLevel.ERROR]

    @property
    def warnings(self) -> list[ValidationDiagnostic]:
        return [d for d in self._diagnostics if d.level is ValidationLevel.WARNING]

    @property
    def is_valid(self) -> bool:
        return not any(d.level is ValidationLevel.ERROR for d in self._diagnostics)

    @property
    def has_warnings(self) -> bool:
        return any(d.level is ValidationLevel.WARNING for d in self._diagnostics)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Return a new result with *other*'s diagnostics appended."""
        return ValidationResult(self._diagnostics + tuple(other))

    def describe(self, label: str = "Form XML") -> str:
        """Render the result as a short report headed by *label*."""
        if self.is_valid:
            return f"{label} is valid."
        lines = [f"{label} has validation issues:"]
        lines.extend(f"- {d.level.value}: {d.message}" for d in self._diagnostics)
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()
