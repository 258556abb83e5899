"""Test helpers for building rules and inspecting results."""

from doccheck.associator import associate
from doccheck.models import ConstructKind, Declaration, SourceFile, ViolationRecord
from doccheck.scanner import scan
from doccheck.schema import OptionalField, RequiredField, Rule, ValuePredicate
from doccheck.validator import validate


def make_rule(
    kind: str = "Function",
    required: dict[str, str] | None = None,
    optional: dict[str, str] | None = None,
    param_tag: str | None = None,
    check_todos: bool = True,
) -> Rule:
    """Build a Rule from predicate spec strings ({"@tag": "non-empty"})."""
    required = required or {"@description": "non-empty"}
    return Rule(
        kind=kind,
        required=tuple(RequiredField(tag, ValuePredicate.parse(spec)) for tag, spec in required.items()),
        optional=tuple(OptionalField(tag, ValuePredicate.parse(spec)) for tag, spec in (optional or {}).items()),
        param_tag=param_tag,
        check_todos=check_todos,
    )


def summarize(declarations: list[Declaration]) -> list[tuple[str, str]]:
    """(kind, name) pairs, in scan order."""
    return [(d.kind.value, d.name) for d in declarations]


def find(source: SourceFile, kind: ConstructKind, name: str) -> Declaration:
    """The scanned declaration with the given kind and name."""
    for declaration in scan(source):
        if declaration.kind == kind and declaration.name == name:
            return declaration
    raise AssertionError(f"{kind.value} {name!r} not found in {source.path}")


def check(source: SourceFile, kind: ConstructKind, name: str, rule: Rule) -> list[ViolationRecord]:
    """Scan, associate and validate one declaration."""
    declaration = find(source, kind, name)
    return validate(declaration, associate(declaration), rule)


def kinds_of(violations: list[ViolationRecord]) -> list[str]:
    return [v.kind.value for v in violations]
