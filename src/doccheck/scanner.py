"""Construct scanner.

Finds declarations with line patterns rather than a full grammar. The scanner
is conservative: a construct it cannot recognise with confidence is skipped,
because a spurious declaration would produce an unjustified violation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import pglast
from pglast.enums import FunctionParameterMode

from .languages import CODE, COMMENT
from .models import ConstructKind, Declaration, SourceFile

log = logging.getLogger(__name__)

HTTP_VERBS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
_VERBS = "|".join(HTTP_VERBS)
_IDENT = r"[A-Za-z_$][\w$]*"

# TypeScript / JavaScript
TS_INTERFACE_RE = re.compile(
    rf"^(?:export\s+)?(?:default\s+)?(?:declare\s+)?interface\s+({_IDENT})"
)
TS_TYPE_RE = re.compile(rf"^(?:export\s+)?(?:declare\s+)?type\s+({_IDENT})(?:<[^=]*>)?\s*=\s*\{{")
TS_FUNCTION_RE = re.compile(
    rf"^export\s+(?:default\s+)?(?:async\s+)?function\s*\*?\s*({_IDENT})\s*(?:<[^(]*>)?\s*\("
)
TS_ARROW_RE = re.compile(
    rf"^export\s+const\s+({_IDENT})\s*(?::[^=]+)?=\s*(?:async\s+)?"
    rf"(?:function\b|\([^)]*\)\s*(?::\s*[^=]+)?=>|{_IDENT}\s*=>)"
)
TS_ARROW_PARAMS_RE = re.compile(r"=\s*(?:async\s+)?(?:function\s*\*?\s*[\w$]*\s*)?\(")
TS_ARROW_SINGLE_RE = re.compile(rf"=\s*(?:async\s+)?({_IDENT})\s*=>")
TS_VERB_RE = re.compile(rf"^export\s+(?:async\s+)?(?:function\s+|const\s+)({_VERBS})\b")
TS_ROUTER_CALL_RE = re.compile(
    rf"^(?:app|router|api|server|{_IDENT}Router)\."
    r"(get|post|put|patch|delete|head|options|all)\(\s*(['\"`])(/[^'\"`]*)\2"
)
TS_CLASS_RE = re.compile(rf"^export\s+(?:default\s+)?(?:abstract\s+)?class\s+({_IDENT})")
TS_METHOD_RE = re.compile(
    rf"^((?:(?:public|private|protected|static|async|override|abstract|get|set)\s+)*)"
    rf"\*?\s*({_IDENT})\s*(?:<[^(]*>)?\s*\((.*)$"
)
TS_TEST_RE = re.compile(
    r"^(describe|it|test)(?:\.(?:only|skip|todo|concurrent))?(?:\.each\s*\([^)]*\))?"
    r"\s*\(\s*(['\"`])(.+?)\2"
)
TS_REQUEST_PARAMS = ("req", "request")
TS_RESPONSE_PARAMS = ("res", "response", "reply")
TS_NOT_METHODS = frozenset(
    {"if", "for", "while", "switch", "catch", "return", "constructor", "function", "super", "new", "else", "do"}
)

# Python
PY_DEF_RE = re.compile(r"^(\s*)(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\(")
PY_CLASS_RE = re.compile(r"^(\s*)class\s+([A-Za-z_]\w*)\s*(?:\((.*)\))?\s*:")
PY_ROUTE_RE = re.compile(
    r"^@\w+\.(get|post|put|patch|delete|head|options|route|api_route)\(\s*(['\"])([^'\"]*)\2"
)
PY_INTERFACE_BASES_RE = re.compile(r"\b(?:Protocol|TypedDict|ABC|ABCMeta|NamedTuple|BaseModel)\b")
PY_SKIP_PARAMS = frozenset({"self", "cls", "*", "/"})

# Env files
ENV_ENTRY_RE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=")

_STRING_RE = re.compile(r"""(["'`])(?:\\.|(?!\1).)*\1""")

_PARAM_NAME_RE = re.compile(rf"^(?:(?:public|private|protected|readonly)\s+)*(?:\.\.\.)?\*{{0,2}}({_IDENT})")

# (kind, name, parameter names)
_Match = tuple[ConstructKind, str, "tuple[str, ...] | None"]


def _signature_args(line: str, open_index: int) -> str | None:
    """Return the text between the parenthesis at open_index and its match.

    Returns None when the signature does not close on the same line.
    """
    depth = 0
    for index in range(open_index, len(line)):
        char = line[index]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                return line[open_index + 1 : index]
    return None


def _split_top_level(args: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    previous = ""
    for char in args:
        if char in "([{<":
            depth += 1
        elif char in ")]}" or (char == ">" and previous != "="):
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
        previous = char
    if current.strip():
        parts.append(current)
    return parts


def _mask_strings(text: str) -> str:
    """Blank out string literal contents, keeping every offset in place."""
    return _STRING_RE.sub(lambda m: m.group(1) + " " * (len(m.group(0)) - 2) + m.group(1), text)


def parse_params(line: str, open_index: int, skip: frozenset[str] = frozenset()) -> tuple[str, ...] | None:
    """Parameter names of a one-line signature, or None if not parseable.

    Destructured parameters make the whole list unparseable. Commas and
    brackets inside string defaults are ignored.
    """
    args = _signature_args(_mask_strings(line), open_index)
    if args is None:
        return None
    names: list[str] = []
    for part in _split_top_level(args):
        part = part.strip()
        if not part or part in skip:
            continue
        if part.lstrip(".").startswith(("{", "[")):
            return None
        match = _PARAM_NAME_RE.match(part)
        if match is None:
            return None
        name = match.group(1)
        if name in skip or name == "this":
            continue
        names.append(name)
    return tuple(names)


def _code_only(stripped: str) -> str:
    code = _STRING_RE.sub('""', stripped)
    return code.split("//", 1)[0]


def _paren_balance(code: str) -> int:
    return code.count("(") - code.count(")")


def _unclosed_triple_quote(stripped: str) -> str | None:
    for delimiter in ('"""', "'''"):
        if stripped.count(delimiter) % 2 == 1:
            return delimiter
    return None


@dataclass
class _ClassScope:
    name: str
    body_depth: int
    opened: bool = False


def _file_declaration(source: SourceFile) -> Declaration:
    classes = source.classes
    index = 0
    if classes and source.lines[0].startswith("#!"):
        index = 1
    while index < len(classes) and classes[index] == COMMENT:
        index += 1
    return Declaration(
        kind=ConstructKind.FILE,
        name=source.path,
        line=1,
        source=source,
        anchor_line=index + 1,
    )


def _arrow_params(stripped: str, name_end: int) -> tuple[str, ...] | None:
    rest = stripped[name_end:]
    match = TS_ARROW_PARAMS_RE.search(rest)
    if match:
        return parse_params(rest, match.end() - 1)
    match = TS_ARROW_SINGLE_RE.search(rest)
    if match:
        return (match.group(1),)
    return None


def _function_or_handler(name: str, params: tuple[str, ...] | None) -> _Match:
    if (
        params
        and len(params) >= 2
        and params[0] in TS_REQUEST_PARAMS
        and params[1] in TS_RESPONSE_PARAMS
    ):
        return ConstructKind.API_ROUTE, name, params
    return ConstructKind.FUNCTION, name, params


def _match_ecmascript(stripped: str) -> _Match | None:
    match = TS_VERB_RE.match(stripped)
    if match:
        return ConstructKind.API_ROUTE, match.group(1), None
    match = TS_FUNCTION_RE.match(stripped)
    if match:
        return _function_or_handler(match.group(1), parse_params(stripped, match.end() - 1))
    match = TS_ARROW_RE.match(stripped)
    if match:
        return _function_or_handler(match.group(1), _arrow_params(stripped, match.end(1)))
    match = TS_ROUTER_CALL_RE.match(stripped)
    if match:
        return ConstructKind.API_ROUTE, f"{match.group(1).upper()} {match.group(3)}", None
    match = TS_INTERFACE_RE.match(stripped) or TS_TYPE_RE.match(stripped)
    if match:
        return ConstructKind.INTERFACE, match.group(1), None
    match = TS_TEST_RE.match(stripped)
    if match:
        return ConstructKind.TEST, match.group(3), None
    return None


def _match_method(stripped: str, class_name: str) -> _Match | None:
    match = TS_METHOD_RE.match(stripped)
    if match is None:
        return None
    modifiers, name, rest = match.groups()
    if "private" in modifiers or "protected" in modifiers:
        return None
    if name.startswith("_") or name in TS_NOT_METHODS:
        return None
    # Body on this line, or parameters continued on the next ones
    if rest.strip() and not rest.rstrip().endswith(("{", "}", "(", ",")):
        return None
    params = parse_params(stripped, stripped.find("(", match.start(2)))
    return ConstructKind.METHOD, f"{class_name}.{name}", params


def _scan_ecmascript(source: SourceFile) -> list[Declaration]:
    found: list[Declaration] = []
    depth = 0
    scopes: list[_ClassScope] = []
    decorator_start: int | None = None
    decorator_parens = 0

    for index, (line, cls) in enumerate(zip(source.lines, source.classes)):
        if cls != CODE:
            continue
        stripped = line.strip()
        code = _code_only(stripped)

        if decorator_parens > 0 or stripped.startswith("@"):
            if decorator_start is None:
                decorator_start = index
            decorator_parens = max(decorator_parens + _paren_balance(code), 0)
        else:
            matched = None
            if scopes and scopes[-1].opened and depth == scopes[-1].body_depth:
                matched = _match_method(stripped, scopes[-1].name)
            if matched is None:
                matched = _match_ecmascript(stripped)
            class_match = TS_CLASS_RE.match(stripped)
            if class_match:
                scopes.append(_ClassScope(name=class_match.group(1), body_depth=depth + 1))
            elif matched is not None:
                kind, name, params = matched
                anchor = decorator_start if decorator_start is not None else index
                found.append(
                    Declaration(kind, name, index + 1, source, anchor_line=anchor + 1, params=params)
                )
            decorator_start = None

        depth += code.count("{") - code.count("}")
        if scopes and depth >= scopes[-1].body_depth:
            scopes[-1].opened = True
        while scopes and scopes[-1].opened and depth < scopes[-1].body_depth:
            scopes.pop()
    return found


def _scan_python(source: SourceFile) -> list[Declaration]:
    found: list[Declaration] = []
    current_class: tuple[str, bool, bool] | None = None  # (name, public, is_test)
    method_indent: int | None = None
    decorator_start: int | None = None
    decorator_parens = 0
    route: tuple[str, str] | None = None
    in_string: str | None = None

    for index, (line, cls) in enumerate(zip(source.lines, source.classes)):
        if cls != CODE:
            continue
        if in_string is not None:
            if line.count(in_string) % 2 == 1:
                in_string = None
            continue
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())
        in_string = _unclosed_triple_quote(stripped)

        # Class body indent comes from its first line, whatever that line is
        if current_class is not None and method_indent is None and indent > 0:
            method_indent = indent

        if decorator_parens > 0 or stripped.startswith("@"):
            if decorator_start is None:
                decorator_start = index
            match = PY_ROUTE_RE.match(stripped)
            if match and route is None:
                verb = match.group(1).upper()
                route = ("ROUTE" if verb in ("ROUTE", "API_ROUTE") else verb, match.group(3))
            decorator_parens = max(decorator_parens + _paren_balance(_STRING_RE.sub('""', stripped)), 0)
            continue

        if indent == 0 and current_class is not None:
            current_class = None
            method_indent = None

        anchor = (decorator_start if decorator_start is not None else index) + 1
        pending_route = route
        decorator_start = None
        route = None

        match = PY_CLASS_RE.match(line)
        if match:
            if match.group(1):
                continue
            name = match.group(2)
            public = not name.startswith("_")
            current_class = (name, public, name.startswith("Test"))
            method_indent = None
            if public and PY_INTERFACE_BASES_RE.search(match.group(3) or ""):
                found.append(
                    Declaration(ConstructKind.INTERFACE, name, index + 1, source, anchor_line=anchor)
                )
            continue

        match = PY_DEF_RE.match(line)
        if match is None:
            continue
        name = match.group(2)
        params = parse_params(line, match.end() - 1, PY_SKIP_PARAMS)

        if pending_route is not None:
            verb, path = pending_route
            found.append(
                Declaration(
                    ConstructKind.API_ROUTE, f"{verb} {path}", anchor, source, anchor_line=anchor, params=params
                )
            )
            continue
        if name.startswith("_"):
            continue
        if indent == 0:
            kind = ConstructKind.TEST if name.startswith("test_") else ConstructKind.FUNCTION
            found.append(Declaration(kind, name, index + 1, source, anchor_line=anchor, params=params))
            continue
        if current_class is None or not current_class[1]:
            continue
        if indent != method_indent:
            continue

        class_name, _, is_test = current_class
        if is_test:
            if name.startswith("test_"):
                found.append(
                    Declaration(ConstructKind.TEST, f"{class_name}.{name}", index + 1, source, anchor_line=anchor)
                )
            continue
        found.append(
            Declaration(
                ConstructKind.METHOD, f"{class_name}.{name}", index + 1, source, anchor_line=anchor, params=params
            )
        )
    return found


def _first_token(text: str, pos: int) -> int:
    """Return the offset of the first character at or after pos that is not whitespace or a comment."""
    while pos < len(text):
        if text[pos].isspace():
            pos += 1
        elif text.startswith("--", pos):
            end = text.find("\n", pos)
            pos = len(text) if end == -1 else end + 1
        elif text.startswith("/*", pos):
            end = text.find("*/", pos + 2)
            pos = len(text) if end == -1 else end + 2
        else:
            break
    return pos


def _scan_sql(source: SourceFile) -> list[Declaration]:
    try:
        stmts = pglast.parse_sql(source.text)
    except pglast.Error as e:
        log.warning("Failed to parse %s: %s", source.path, e)
        return []

    found: list[Declaration] = []
    classes = source.classes
    for stmt in stmts:
        if not isinstance(stmt.stmt, pglast.ast.CreateFunctionStmt):
            continue
        func = stmt.stmt
        func_name = ".".join(n.sval for n in func.funcname)
        # Skip internal functions
        if "._" in func_name or func_name.startswith("_"):
            continue

        params = tuple(
            p.name
            for p in func.parameters or ()
            if p.name and p.mode != FunctionParameterMode.FUNC_PARAM_TABLE
        )
        # stmt_location points just past the previous ';'
        index = source.text[: _first_token(source.text, stmt.stmt_location or 0)].count("\n")
        while index < len(classes) and classes[index] != CODE:
            index += 1
        found.append(
            Declaration(ConstructKind.FUNCTION, func_name, index + 1, source, anchor_line=index + 1, params=params)
        )
    return found


def _scan_env(source: SourceFile) -> list[Declaration]:
    found: list[Declaration] = []
    for index, (line, cls) in enumerate(zip(source.lines, source.classes)):
        if cls != CODE:
            continue
        match = ENV_ENTRY_RE.match(line.strip())
        if match:
            found.append(Declaration(ConstructKind.ENV_CONFIG, match.group(1), index + 1, source, anchor_line=index + 1))
    return found


_SCANNERS = {
    "ecmascript": _scan_ecmascript,
    "python": _scan_python,
    "sql": _scan_sql,
    "env": _scan_env,
}


def scan(source: SourceFile) -> list[Declaration]:
    """Find the declarations in a source file, ordered by position.

    Every file yields a File declaration first. The source is never modified.
    """
    declarations = [_file_declaration(source)]
    scanner = _SCANNERS.get(source.profile.name)
    if scanner is not None:
        declarations.extend(scanner(source))
    declarations.sort(key=lambda d: (d.line, d.anchor))
    log.debug("%s: %d declarations", source.path, len(declarations))
    return declarations
