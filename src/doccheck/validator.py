"""Validation of comment blocks against rules.

Validation is pure: it reads a declaration, its comment block and a rule and
returns new ViolationRecord values. No I/O, no mutation.
"""

from __future__ import annotations

import re

from .associator import match_tag, parse_comment
from .models import CommentBlock, Declaration, ViolationKind, ViolationRecord
from .schema import Rule

TODO_RE = re.compile(r"\bTODO\b")
# Context markers that give a TODO an owner trail
ISSUE_REF_RE = re.compile(r"#\d+|\b[A-Z][A-Z0-9]+-\d+\b|\bissues?/\d+")
PRIORITY_RE = re.compile(
    r"\bP[0-4]\b|\b(?:low|medium|high|critical|urgent)[- ]priority\b|\bpriority\s*[:=]\s*\w+",
    re.IGNORECASE,
)
ESTIMATE_RE = re.compile(
    r"\b\d+(?:\.\d+)?\s*(?:h|hrs?|hours?|d|days?|w|wks?|weeks?|pts?|points?|sp)\b",
    re.IGNORECASE,
)


def has_todo_context(text: str) -> bool:
    """True if text carries an issue reference, a priority or an estimate."""
    return bool(ISSUE_REF_RE.search(text) or PRIORITY_RE.search(text) or ESTIMATE_RE.search(text))


def documented_param(value: str) -> str:
    """Parameter name documented by a tag value.

    Handles "name desc", "{Type} name - desc", "[name=default] desc" and
    "name: desc".
    """
    text = value.strip()
    if text.startswith("{"):
        depth = 0
        for index, char in enumerate(text):
            depth += {"{": 1, "}": -1}.get(char, 0)
            if depth == 0:
                text = text[index + 1 :].strip()
                break
    token = text.split(maxsplit=1)[0] if text else ""
    token = token.strip("[]").split("=", 1)[0]
    return token.lstrip(".*").rstrip(":,-")


def _todo_lines(block: CommentBlock) -> list[tuple[int, str]]:
    """(line number, text) of each TODO without adjacent context."""
    stale: list[tuple[int, str]] = []
    lines = block.text_lines
    for offset, text in enumerate(lines):
        if not TODO_RE.search(text):
            continue
        context = text
        following = lines[offset + 1] if offset + 1 < len(lines) else ""
        if following and match_tag(following) is None and not TODO_RE.search(following):
            context += "\n" + following
        if not has_todo_context(context):
            stale.append((block.start_line + offset, text))
    return stale


def validate(
    declaration: Declaration, block: CommentBlock | None, rule: Rule, *, check_todos: bool = True
) -> list[ViolationRecord]:
    """Check one declaration's comment block against its rule.

    Args:
        declaration: The construct being checked
        block: Its associated comment block, or None when undocumented
        rule: The rule for the construct's kind
        check_todos: False when this block's TODOs were already reported
            for another declaration sharing it

    Returns:
        Violations in detection order; empty when the block complies
    """
    construct = declaration.kind.value
    label = f"{construct} '{declaration.name}'"

    def violation(kind: ViolationKind, message: str, tag: str | None = None, line: int | None = None) -> ViolationRecord:
        return ViolationRecord(
            path=declaration.source.path,
            line=line or declaration.line,
            name=declaration.name,
            construct=construct,
            kind=kind,
            message=message,
            tag=tag,
        )

    if block is None:
        return [violation(ViolationKind.MISSING_BLOCK, f"{label} has no documentation comment")]

    comment = parse_comment(block.text_lines)
    violations: list[ViolationRecord] = []

    for required in rule.required:
        values = comment.values(required.tag)
        predicate = required.predicate
        if not values:
            violations.append(
                violation(
                    ViolationKind.MISSING_REQUIRED_TAG,
                    f"{label} is missing required tag {required.tag}",
                    tag=required.tag,
                )
            )
        elif predicate.requires_content and not any(v.strip() for v in values):
            violations.append(
                violation(
                    ViolationKind.EMPTY_REQUIRED_TAG,
                    f"{label} has an empty {required.tag}",
                    tag=required.tag,
                )
            )
        else:
            invalid = [v for v in values if not predicate.accepts(v)]
            if invalid:
                shown = invalid[0].strip().splitlines()[0] if invalid[0].strip() else ""
                violations.append(
                    violation(
                        ViolationKind.INVALID_TAG_VALUE,
                        f"{label} has invalid {required.tag} {shown!r}: expected {predicate.describe()}",
                        tag=required.tag,
                    )
                )

    if rule.param_tag and declaration.params:
        documented = {documented_param(v) for v in comment.values(rule.param_tag)}
        for param in declaration.params:
            if param not in documented:
                violations.append(
                    violation(
                        ViolationKind.MISSING_REQUIRED_TAG,
                        f"{label} is missing {rule.param_tag} for parameter '{param}'",
                        tag=rule.param_tag,
                    )
                )

    if rule.check_todos and check_todos:
        for line, text in _todo_lines(block):
            violations.append(
                violation(
                    ViolationKind.STALE_OWNERSHIP,
                    f"TODO in {label} documentation lacks an issue reference, priority or estimate: {text!r}",
                    line=line,
                )
            )

    return violations
