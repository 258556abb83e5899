"""Comment-to-declaration association and comment parsing."""

from __future__ import annotations

import re

from .languages import COMMENT
from .models import CommentBlock, Declaration, StructuredComment

# Structured doc tags: "@param name description"
TAG_RE = re.compile(r"^(@[A-Za-z][\w.-]*)(?:\s+(.*))?$")
# Inline section labels: "SECURITY: ...", "BUSINESS RULE: ..."
LABEL_RE = re.compile(r"^([A-Z][A-Z0-9_]+(?: [A-Z][A-Z0-9_]+)*):(?:\s+(.*))?$")


def associate(declaration: Declaration) -> CommentBlock | None:
    """Find the comment block directly above a declaration.

    Walks upward from the line above the declaration's anchor and collects
    contiguous comment lines. A blank line, a code line or the start of the
    file ends the walk. Returns None when no comment line is adjacent.
    """
    source = declaration.source
    classes = source.classes
    end = min(declaration.anchor - 1, len(classes))
    index = end - 1
    while index >= 0 and classes[index] == COMMENT:
        index -= 1
    start = index + 1
    if start >= end:
        return None

    raw_lines = source.lines[start:end]
    text_lines = tuple(source.profile.comment_text(line) for line in raw_lines)
    return CommentBlock(start_line=start + 1, raw_lines=raw_lines, text_lines=text_lines)


def match_tag(line: str) -> tuple[str, str] | None:
    """Split a tag line into (tag, first value line), or None."""
    match = TAG_RE.match(line) or LABEL_RE.match(line)
    if match is None:
        return None
    return match.group(1), (match.group(2) or "").strip()


def parse_comment(text_lines: tuple[str, ...] | list[str]) -> StructuredComment:
    """Parse marker-stripped comment lines into tags and description.

    Lines before the first tag form the description. Lines after a tag that
    do not start a new tag are continuation lines of that tag's value.
    Repeated tags keep every value in order.
    """
    result = StructuredComment(text_lines=list(text_lines))
    description: list[str] = []
    current: str | None = None
    value_lines: list[str] = []

    for line in text_lines:
        tag = match_tag(line)
        if tag is not None:
            if current is not None:
                result.tags.setdefault(current, []).append("\n".join(value_lines))
            current, first = tag
            value_lines = [first] if first else []
        elif not line:
            continue
        elif current is None:
            description.append(line)
        else:
            value_lines.append(line)

    if current is not None:
        result.tags.setdefault(current, []).append("\n".join(value_lines))
    result.description = "\n".join(description)
    return result
