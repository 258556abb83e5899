"""Rule table configuration.

The rule table is JSON. The embedded default (``default_rules.json``) is used
unless a file is given or ``doccheck.json`` exists at the scan root::

    {
        "fail_on": ["MissingBlock", "MissingRequiredTag"],
        "exclude": ["vendor/**"],
        "max_file_bytes": 2097152,
        "rules": {
            "Function": {
                "required": {"@description": "non-empty"},
                "optional": {"@returns": "non-empty"},
                "param_tag": "@param"
            }
        }
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import ConstructKind, ViolationKind
from .schema import OptionalField, RequiredField, Rule, SchemaRegistry, ValuePredicate
from .sources import DEFAULT_MAX_FILE_BYTES

log = logging.getLogger(__name__)

CONFIG_FILENAME = "doccheck.json"
EMBEDDED_SOURCE = "<embedded rules>"

_KNOWN_KINDS = frozenset(kind.value for kind in ConstructKind)


class RuleModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    required: dict[str, str] = Field(min_length=1)
    optional: dict[str, str] = Field(default_factory=dict)
    param_tag: str | None = None
    check_todos: bool = True


class RuleTableModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    rules: dict[str, RuleModel]
    fail_on: list[str] | None = None
    exclude: list[str] = Field(default_factory=list)
    max_file_bytes: int = Field(default=DEFAULT_MAX_FILE_BYTES, gt=0)

    @field_validator("fail_on")
    @classmethod
    def _known_violation_kinds(cls, value: list[str] | None) -> list[str] | None:
        for name in value or ():
            ViolationKind.parse(name)
        return value


@dataclass(frozen=True)
class CheckConfig:
    """Effective configuration for one run."""

    registry: SchemaRegistry
    fail_on: frozenset[ViolationKind]
    exclude: tuple[str, ...] = ()
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    source: str = EMBEDDED_SOURCE


def parse_fail_on(names: list[str] | str) -> frozenset[ViolationKind]:
    """Parse violation kind names ("MissingBlock,StaleOwnership").

    Raises:
        ConfigError: If a name is not a violation kind.
    """
    if isinstance(names, str):
        names = names.split(",")
    kinds = set()
    for name in names:
        name = name.strip()
        if not name:
            continue
        try:
            kinds.add(ViolationKind.parse(name))
        except ValueError as e:
            raise ConfigError(str(e), source="--fail-on") from e
    return frozenset(kinds)


def _format_validation_error(e: ValidationError) -> str:
    problems = []
    for error in e.errors(include_context=False):
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return "; ".join(problems)


def _build_rule(kind: str, model: RuleModel, source: str) -> Rule:
    try:
        required = tuple(
            RequiredField(tag=tag, predicate=ValuePredicate.parse(spec))
            for tag, spec in model.required.items()
        )
        optional = tuple(
            OptionalField(tag=tag, predicate=ValuePredicate.parse(spec))
            for tag, spec in model.optional.items()
        )
    except ValueError as e:
        raise ConfigError(f"rules.{kind}: {e}", source=source) from e
    return Rule(
        kind=kind,
        required=required,
        optional=optional,
        param_tag=model.param_tag,
        check_todos=model.check_todos,
    )


def parse_config(text: str, source: str) -> CheckConfig:
    """Parse and validate a JSON rule table.

    Raises:
        ConfigError: If the text is not valid JSON or not a valid rule table.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON: {e}", source=source) from e

    try:
        table = RuleTableModel.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_validation_error(e), source=source) from e

    rules: dict[str, Rule] = {}
    for kind, model in table.rules.items():
        if kind not in _KNOWN_KINDS:
            log.debug("Rule for %s: no scanner produces this construct kind yet", kind)
        rules[kind] = _build_rule(kind, model, source)

    if table.fail_on is None:
        fail_on = frozenset(ViolationKind)
    else:
        fail_on = frozenset(ViolationKind.parse(name) for name in table.fail_on)

    return CheckConfig(
        registry=SchemaRegistry(rules),
        fail_on=fail_on,
        exclude=tuple(table.exclude),
        max_file_bytes=table.max_file_bytes,
        source=source,
    )


def load_config(path: Path | None = None) -> CheckConfig:
    """Load a rule table file, or the embedded default when path is None.

    Raises:
        ConfigError: If the file cannot be read or is malformed.
    """
    if path is None:
        text = resources.files("doccheck").joinpath("default_rules.json").read_text(encoding="utf-8")
        return parse_config(text, EMBEDDED_SOURCE)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read rule table: {e}", source=str(path)) from e
    config = parse_config(text, str(path))
    log.info("Loaded %d rules from %s", len(config.registry), path)
    return config


def find_config(roots: list[Path]) -> Path | None:
    """Return ``doccheck.json`` from the first directory root that has one."""
    for root in roots:
        candidate = root / CONFIG_FILENAME
        if root.is_dir() and candidate.is_file():
            return candidate
    return None
