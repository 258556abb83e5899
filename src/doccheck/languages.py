"""Comment syntax per language and line classification."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

BLANK = "blank"
COMMENT = "comment"
CODE = "code"

# Single, double and template string literals on one line
_STRING_RE = re.compile(r"""(["'`])(?:\\.|(?!\1).)*\1""")


@dataclass(frozen=True)
class LanguageProfile:
    """Comment conventions for one family of source files."""

    name: str  # "ecmascript" | "python" | "sql" | "env"
    extensions: tuple[str, ...]
    line_comments: tuple[str, ...]
    block_comment: tuple[str, str] | None = None

    def is_line_comment(self, stripped: str) -> bool:
        return stripped.startswith(self.line_comments)

    def classify(self, lines: tuple[str, ...] | list[str]) -> tuple[str, ...]:
        """Classify every line as blank, comment or code.

        Lines inside a block comment are comment lines. A line that starts
        with code is a code line even when it opens a block comment.
        """
        result: list[str] = []
        in_block = False
        opener, closer = self.block_comment or ("", "")

        for index, line in enumerate(lines):
            stripped = line.strip()
            if in_block:
                result.append(COMMENT)
                if closer in stripped:
                    in_block = False
                continue
            if not stripped:
                result.append(BLANK)
            elif index == 0 and stripped.startswith("#!"):
                result.append(CODE)
            elif self.is_line_comment(stripped):
                result.append(COMMENT)
            elif opener and stripped.startswith(opener):
                rest = stripped[len(opener) :]
                if closer not in rest:
                    in_block = True
                    result.append(COMMENT)
                elif rest.split(closer, 1)[1].strip():
                    result.append(CODE)
                else:
                    result.append(COMMENT)
            else:
                result.append(CODE)
                if opener:
                    code = _STRING_RE.sub('""', stripped)
                    if code.rfind(opener) > code.rfind(closer):
                        in_block = True
        return tuple(result)

    def comment_text(self, line: str) -> str:
        """Strip comment markers from one comment line."""
        text = line.strip()
        if self.block_comment:
            opener, closer = self.block_comment
            if text.endswith(closer):
                text = text[: -len(closer)].rstrip()
            for marker in (opener + "*", opener):
                if text.startswith(marker):
                    return text[len(marker) :].strip()
        for marker in sorted(self.line_comments, key=len, reverse=True):
            if text.startswith(marker):
                return text[len(marker) :].strip()
        if self.block_comment and text.startswith("*"):
            text = text[1:]
        return text.strip()


ECMASCRIPT = LanguageProfile(
    name="ecmascript",
    extensions=(".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".mts", ".cts"),
    line_comments=("///", "//"),
    block_comment=("/*", "*/"),
)

PYTHON = LanguageProfile(
    name="python",
    extensions=(".py", ".pyi"),
    line_comments=("#",),
)

SQL = LanguageProfile(
    name="sql",
    extensions=(".sql",),
    line_comments=("--",),
    block_comment=("/*", "*/"),
)

ENV = LanguageProfile(
    name="env",
    extensions=(".env",),
    line_comments=("#",),
)

PROFILES: tuple[LanguageProfile, ...] = (ECMASCRIPT, PYTHON, SQL, ENV)


def profile_for(path: str | PurePath) -> LanguageProfile | None:
    """Pick the language profile for a path, or None if unsupported."""
    name = PurePath(path).name
    if name == ".env" or name.startswith(".env."):
        return ENV
    suffix = PurePath(path).suffix.lower()
    for profile in PROFILES:
        if suffix in profile.extensions:
            return profile
    return None
