"""doccheck - documentation-compliance checker.

This package provides:
- scan / associate / validate: the per-file checking pipeline
- SchemaRegistry and load_config: the rule table
- run and aggregate: multi-file runs and deterministic reports
"""

from __future__ import annotations

__version__ = "0.1.0"

from .associator import associate, parse_comment
from .config import CheckConfig, load_config, parse_config
from .engine import check_source, run
from .errors import ConfigError, DoccheckError, UnreadableFileError
from .models import (
    CommentBlock,
    ConstructKind,
    Declaration,
    Report,
    SourceFile,
    StructuredComment,
    ViolationKind,
    ViolationRecord,
)
from .report import aggregate, render_json, render_text
from .scanner import scan
from .schema import Rule, SchemaRegistry
from .validator import validate

__all__ = [
    "__version__",
    "CheckConfig",
    "CommentBlock",
    "ConfigError",
    "ConstructKind",
    "Declaration",
    "DoccheckError",
    "Report",
    "Rule",
    "SchemaRegistry",
    "SourceFile",
    "StructuredComment",
    "UnreadableFileError",
    "ViolationKind",
    "ViolationRecord",
    "aggregate",
    "associate",
    "check_source",
    "load_config",
    "parse_comment",
    "parse_config",
    "render_json",
    "render_text",
    "run",
    "scan",
    "validate",
]
