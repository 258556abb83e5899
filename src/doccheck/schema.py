"""Schema registry: per-construct documentation rules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .models import ConstructKind

PRESENT = "present"
NON_EMPTY = "non-empty"
LIST = "list"
ENUM = "enum"
PATTERN = "matches-pattern"


@dataclass(frozen=True)
class ValuePredicate:
    """Shape a tag value must have.

    Written in the rule table as one of:
        present                  tag must appear, value may be empty
        non-empty                value must contain non-whitespace text
        list                     comma or newline separated, no empty items
        enum:[a, b, c]           stripped value must be one of the choices
        matches-pattern:<regex>  regex must match somewhere in the value
    """

    kind: str
    choices: tuple[str, ...] = ()
    pattern: re.Pattern[str] | None = field(default=None, compare=False)
    spec: str = ""

    @classmethod
    def parse(cls, spec: str) -> ValuePredicate:
        """Parse a predicate spec.

        Raises:
            ValueError: If the spec is not a known predicate or is malformed.
        """
        text = spec.strip()
        if text in (PRESENT, NON_EMPTY, LIST):
            return cls(kind=text, spec=text)
        if text.startswith(ENUM + ":"):
            body = text[len(ENUM) + 1 :].strip()
            if body.startswith("[") and body.endswith("]"):
                body = body[1:-1]
            choices = tuple(
                c.strip().strip("\"'") for c in re.split(r"[,|]", body) if c.strip().strip("\"'")
            )
            if not choices:
                raise ValueError(f"enum predicate has no choices: {spec!r}")
            return cls(kind=ENUM, choices=choices, spec=text)
        if text.startswith(PATTERN + ":"):
            body = text[len(PATTERN) + 1 :]
            if not body.strip():
                raise ValueError(f"matches-pattern predicate has no pattern: {spec!r}")
            try:
                compiled = re.compile(body)
            except re.error as e:
                raise ValueError(f"invalid pattern {body!r}: {e}") from e
            return cls(kind=PATTERN, pattern=compiled, spec=text)
        raise ValueError(
            f"unknown value predicate {spec!r} "
            "(expected present, non-empty, list, enum:[...] or matches-pattern:<regex>)"
        )

    @property
    def requires_content(self) -> bool:
        return self.kind != PRESENT

    def accepts(self, value: str) -> bool:
        stripped = value.strip()
        if self.kind == PRESENT:
            return True
        if self.kind == NON_EMPTY:
            return bool(stripped)
        if self.kind == LIST:
            items = [item.strip() for item in re.split(r"[,\n]", stripped)]
            return bool(stripped) and all(items)
        if self.kind == ENUM:
            return stripped in self.choices
        if self.kind == PATTERN and self.pattern is not None:
            return self.pattern.search(value) is not None
        return False

    def describe(self) -> str:
        if self.kind == ENUM:
            return "one of " + ", ".join(self.choices)
        if self.kind == PATTERN and self.pattern is not None:
            return f"a value matching {self.pattern.pattern!r}"
        if self.kind == LIST:
            return "a list without empty items"
        return self.kind


@dataclass(frozen=True)
class RequiredField:
    tag: str
    predicate: ValuePredicate


@dataclass(frozen=True)
class OptionalField:
    tag: str
    predicate: ValuePredicate | None = None


@dataclass(frozen=True)
class Rule:
    """Required and optional tags for one construct kind."""

    kind: str
    required: tuple[RequiredField, ...]
    optional: tuple[OptionalField, ...] = ()
    param_tag: str | None = None  # e.g. "@param": one entry per parameter
    check_todos: bool = True

    def __post_init__(self) -> None:
        if not self.required:
            raise ValueError(f"rule for {self.kind} has no required fields")

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "required": {f.tag: f.predicate.spec for f in self.required},
            "optional": {f.tag: f.predicate.spec if f.predicate else PRESENT for f in self.optional},
        }
        if self.param_tag:
            data["param_tag"] = self.param_tag
        if not self.check_todos:
            data["check_todos"] = False
        return data


class SchemaRegistry:
    """Read-only lookup from construct kind to Rule.

    A kind without a rule is never checked. Unknown kinds are not an error,
    so rules for new construct kinds can be added to the table alone.
    """

    def __init__(self, rules: Mapping[str, Rule] | None = None) -> None:
        self._rules: Mapping[str, Rule] = MappingProxyType(dict(rules or {}))

    def schema_for(self, kind: ConstructKind | str) -> Rule | None:
        key = kind.value if isinstance(kind, ConstructKind) else kind
        return self._rules.get(key)

    @property
    def kinds(self) -> list[str]:
        return sorted(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {kind: self._rules[kind].to_dict() for kind in self.kinds}
