"""Services package for formatting engine logic."""

from .errors import (
    ApplyError,
    DetectionError,
    DuplicateRuleError,
    FixGenerationError,
    FormatEngineError,
    TemplateNotFoundError,
)
from .rule_registry import FormatRule, RuleRegistry
from .problem_detector import DetectedProblem, detect, detect_problems
from .change_generator import generate_changes
from .change_applier import (
    ApplyResult,
    DocumentHost,
    FailedChange,
    apply_changes,
    resolve_conflicts,
)
from .template_store import DEFAULT_TEMPLATES, TemplateStore, get_template_store

__all__ = [
    # Errors
    "ApplyError",
    "DetectionError",
    "DuplicateRuleError",
    "FixGenerationError",
    "FormatEngineError",
    "TemplateNotFoundError",
    # Engine
    "FormatRule",
    "RuleRegistry",
    "DetectedProblem",
    "detect",
    "detect_problems",
    "generate_changes",
    "ApplyResult",
    "DocumentHost",
    "FailedChange",
    "apply_changes",
    "resolve_conflicts",
    # Templates
    "DEFAULT_TEMPLATES",
    "TemplateStore",
    "get_template_store",
]
