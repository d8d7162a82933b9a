"""Formatting engine error hierarchy.

Setup errors (duplicate rule id, unknown template) are raised to the caller.
Per-rule and per-change errors are caught by the engine, logged, and recorded
so one bad rule or change never aborts the rest of the pass.
"""


class FormatEngineError(Exception):
    """Base exception for formatting engine operations."""

    pass


class DuplicateRuleError(FormatEngineError):
    """A rule id was registered twice. Fatal (programmer error)."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Rule with ID '{rule_id}' is already registered")


class TemplateNotFoundError(FormatEngineError):
    """Unknown template id. Fatal (programmer error)."""

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template with ID '{template_id}' not found")


class DetectionError(FormatEngineError):
    """A rule's detect step failed. Non-fatal, the rule yields no problems."""

    def __init__(self, rule_id: str, message: str):
        self.rule_id = rule_id
        super().__init__(f"Detection failed for rule '{rule_id}': {message}")


class FixGenerationError(FormatEngineError):
    """A rule's fix generation failed. Non-fatal, the problem is dropped."""

    def __init__(self, rule_id: str, problem_id: str, message: str):
        self.rule_id = rule_id
        self.problem_id = problem_id
        super().__init__(
            f"Fix generation failed for problem '{problem_id}' (rule '{rule_id}'): {message}"
        )


class ApplyError(FormatEngineError):
    """A change could not be applied. Non-fatal, excluded from the audit count."""

    def __init__(self, change_id: str, message: str):
        self.change_id = change_id
        self.message = message
        super().__init__(f"Failed to apply change '{change_id}': {message}")
