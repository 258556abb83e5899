"""Data models for documentation checking."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .languages import LanguageProfile


class ConstructKind(str, Enum):
    """Declarations subject to documentation requirements."""

    FILE = "File"
    INTERFACE = "Interface"
    FUNCTION = "Function"
    API_ROUTE = "ApiRoute"
    METHOD = "Method"
    TEST = "Test"
    ENV_CONFIG = "EnvConfig"


class ViolationKind(str, Enum):
    """Kinds of documentation violations, in report order."""

    MISSING_BLOCK = "MissingBlock"
    MISSING_REQUIRED_TAG = "MissingRequiredTag"
    EMPTY_REQUIRED_TAG = "EmptyRequiredTag"
    INVALID_TAG_VALUE = "InvalidTagValue"
    STALE_OWNERSHIP = "StaleOwnership"

    @property
    def ordinal(self) -> int:
        return _VIOLATION_ORDER[self]

    @classmethod
    def parse(cls, name: str) -> ViolationKind:
        """Look up a kind by its report name (e.g. "MissingBlock")."""
        for kind in cls:
            if kind.value == name:
                return kind
        raise ValueError(f"unknown violation kind: {name!r}")


_VIOLATION_ORDER = {kind: index for index, kind in enumerate(ViolationKind)}


class DiagnosticKind(str, Enum):
    """Per-file processing failures (not violations)."""

    UNREADABLE_FILE = "UnreadableFile"
    PROCESSING_FAILED = "ProcessingFailed"


@dataclass(frozen=True)
class SourceFile:
    """Read-only snapshot of one source file."""

    path: str  # POSIX path relative to the scan root
    text: str
    profile: LanguageProfile
    lines: tuple[str, ...] = ()

    @classmethod
    def from_text(cls, path: str, text: str, profile: LanguageProfile) -> SourceFile:
        return cls(path=path, text=text, profile=profile, lines=tuple(text.splitlines()))

    @cached_property
    def classes(self) -> tuple[str, ...]:
        """Per-line classification ("blank", "comment" or "code")."""
        return self.profile.classify(self.lines)


@dataclass(frozen=True)
class Declaration:
    """A construct found by the scanner."""

    kind: ConstructKind
    name: str
    line: int  # 1-based line reported to the user
    source: SourceFile = field(repr=False, compare=False)
    anchor_line: int = 0  # first line of the construct incl. decorators
    params: tuple[str, ...] | None = None  # None when the signature was not parsed

    @property
    def anchor(self) -> int:
        return self.anchor_line or self.line


@dataclass
class StructuredComment:
    """Parsed comment block: tags plus free-text description."""

    description: str = ""
    tags: dict[str, list[str]] = field(default_factory=dict)
    text_lines: list[str] = field(default_factory=list)

    def has(self, tag: str) -> bool:
        return tag in self.tags

    def values(self, tag: str) -> list[str]:
        return self.tags.get(tag, [])

    def value(self, tag: str) -> str | None:
        """Last value recorded for a tag (last-value-wins)."""
        values = self.tags.get(tag)
        return values[-1] if values else None


@dataclass(frozen=True)
class CommentBlock:
    """Contiguous comment lines directly above a declaration."""

    start_line: int
    raw_lines: tuple[str, ...]
    text_lines: tuple[str, ...]


@dataclass(frozen=True)
class ViolationRecord:
    """One detected mismatch between a construct's comment and its rule."""

    path: str
    line: int
    name: str
    construct: str
    kind: ViolationKind
    message: str
    tag: str | None = None

    @property
    def sort_key(self) -> tuple[str, int, int, str, str, str]:
        return (self.path, self.line, self.kind.ordinal, self.name, self.tag or "", self.message)

    def format(self) -> str:
        return f"{self.path}:{self.line}: [{self.kind.value}] {self.message}"

    def to_dict(self) -> dict[str, str | int | None]:
        return {
            "path": self.path,
            "line": self.line,
            "construct": self.construct,
            "name": self.name,
            "kind": self.kind.value,
            "tag": self.tag,
            "message": self.message,
        }


@dataclass(frozen=True)
class FileDiagnostic:
    """A file that could not be processed."""

    path: str
    kind: DiagnosticKind
    message: str

    def format(self) -> str:
        return f"{self.path}: [{self.kind.value}] {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "kind": self.kind.value, "message": self.message}


@dataclass
class FileResult:
    """Results for one file, produced privately by a worker."""

    path: str
    violations: list[ViolationRecord] = field(default_factory=list)
    diagnostics: list[FileDiagnostic] = field(default_factory=list)
    skipped: bool = False


@dataclass
class Report:
    """Sorted violations plus summary counts."""

    violations: list[ViolationRecord] = field(default_factory=list)
    diagnostics: list[FileDiagnostic] = field(default_factory=list)
    by_kind: dict[str, int] = field(default_factory=dict)
    by_file: dict[str, int] = field(default_factory=dict)
    files_checked: int = 0
    files_skipped: int = 0

    @property
    def total(self) -> int:
        return len(self.violations)

    def exit_code(self, fail_on: frozenset[ViolationKind] | set[ViolationKind]) -> int:
        """0 when no violation kind is in fail_on, 1 otherwise."""
        if any(v.kind in fail_on for v in self.violations):
            return 1
        return 0
