"""Formatting engine models: problems, changes, options, templates, audit.

Design goal:
- Problems are ephemeral, one detection pass only
- A FormatChange carries an explicit ChangeCommand (target range + operation +
  params) so ranges can be reasoned about without running anything
- AutoFormatOptions and FormatTemplate are read-only inputs

Pydantic v2. Extra fields are forbidden to prevent drift.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, ConfigDict, computed_field, model_validator

from .document import PageMargins, TargetKind


class Severity(str, Enum):
    """Severity level for detected problems."""
    error = "error"
    warning = "warning"
    info = "info"


class ChangeType(str, Enum):
    """Kind of edit a change performs."""
    style = "style"
    text = "text"
    list = "list"
    image = "image"
    table = "table"
    page = "page"
    spacing = "spacing"


class FormatCategory(str, Enum):
    """User-facing rule categories, each gated by an option flag."""
    fonts = "Fonts"
    headings = "Headings"
    spacing = "Spacing"
    lists = "Lists"
    tables = "Tables"
    images = "Images"
    margins = "Margins"
    accessibility = "Accessibility"
    grammar = "Grammar"
    citations = "Citations"
    pdf_repair = "PdfRepair"


class FormatMode(str, Enum):
    auto_fix = "auto-fix"
    suggest = "suggest"
    semi_auto = "semi-auto"


class ProcessingMode(str, Enum):
    local = "local"
    ai = "ai"
    server = "server"


class ChangeOperation(str, Enum):
    """Mutations a document host knows how to perform."""
    set_font = "set_font"
    set_heading_style = "set_heading_style"
    set_heading_level = "set_heading_level"
    delete_paragraphs = "delete_paragraphs"
    set_line_spacing = "set_line_spacing"
    set_list_level = "set_list_level"
    style_table = "style_table"
    resize_image = "resize_image"
    set_alt_text = "set_alt_text"
    set_margins = "set_margins"


# Option flag that gates each category
CATEGORY_OPTION_FLAGS: dict[FormatCategory, str] = {
    FormatCategory.fonts: "enable_fonts",
    FormatCategory.headings: "enable_headings",
    FormatCategory.spacing: "enable_spacing",
    FormatCategory.lists: "enable_lists",
    FormatCategory.tables: "enable_tables",
    FormatCategory.images: "enable_images",
    FormatCategory.margins: "enable_margins",
    FormatCategory.accessibility: "enable_accessibility",
    FormatCategory.grammar: "enable_grammar",
    FormatCategory.citations: "enable_citations",
    FormatCategory.pdf_repair: "enable_pdf_repair",
}


class IndexRange(BaseModel):
    """Inclusive [start, end] range of indices."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "IndexRange":
        if self.start > self.end:
            raise ValueError(f"range start {self.start} is after end {self.end}")
        return self

    @property
    def size(self) -> int:
        """Number of indices covered."""
        return self.end - self.start + 1

    def overlaps(self, other: "IndexRange") -> bool:
        return self.start <= other.end and other.start <= self.end


class Problem(BaseModel):
    """A detected formatting defect."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1, description="Unique within one detection pass")
    description: str = Field(min_length=1)
    severity: Severity
    affected_range: IndexRange
    target: TargetKind = TargetKind.paragraph
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Rule-specific detail the fix generator reads (e.g., heading level)",
    )


class ChangeCommand(BaseModel):
    """Explicit description of a deferred document mutation."""
    model_config = ConfigDict(extra="forbid")

    operation: ChangeOperation
    target: TargetKind = TargetKind.paragraph
    range: IndexRange
    params: dict[str, Any] = Field(default_factory=dict)


class FormatChange(BaseModel):
    """A proposed, independently toggleable remedy for one problem."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    type: ChangeType
    category: FormatCategory
    description: str
    before: str = Field(description="State before the change")
    after: str = Field(description="State after the change")
    command: ChangeCommand
    enabled: bool = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def range(self) -> IndexRange:
        return self.command.range

    @property
    def target(self) -> TargetKind:
        return self.command.target


class AuditEntry(BaseModel):
    """Outcome of one apply pass. Append-only."""
    model_config = ConfigDict(extra="forbid")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    changes_applied: int = Field(ge=0)
    categories: list[FormatCategory] = Field(default_factory=list)
    duration_ms: int = Field(ge=0)

    def summary(self) -> str:
        """One-line description for the completion notice."""
        seconds = round(self.duration_ms / 1000)
        return f"Applied {self.changes_applied} changes in {seconds} seconds."


class AutoFormatOptions(BaseModel):
    """Per-invocation switches. Defaults mirror the auto-format dialog."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    enable_fonts: bool = True
    enable_headings: bool = True
    enable_spacing: bool = True
    enable_lists: bool = True
    enable_tables: bool = True
    enable_images: bool = True
    enable_margins: bool = False
    enable_accessibility: bool = False
    enable_grammar: bool = False
    enable_citations: bool = False
    enable_pdf_repair: bool = False

    mode: FormatMode = FormatMode.semi_auto
    processing_mode: ProcessingMode = ProcessingMode.local
    template_id: str = "standard"

    def is_enabled(self, category: FormatCategory) -> bool:
        return bool(getattr(self, CATEGORY_OPTION_FLAGS[category]))


class TemplateSettings(BaseModel):
    """Option defaults a template contributes. Unset fields are left alone."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    enable_fonts: Optional[bool] = None
    enable_headings: Optional[bool] = None
    enable_spacing: Optional[bool] = None
    enable_lists: Optional[bool] = None
    enable_tables: Optional[bool] = None
    enable_images: Optional[bool] = None
    enable_margins: Optional[bool] = None
    enable_accessibility: Optional[bool] = None
    enable_grammar: Optional[bool] = None
    enable_citations: Optional[bool] = None
    enable_pdf_repair: Optional[bool] = None
    mode: Optional[FormatMode] = None
    processing_mode: Optional[ProcessingMode] = None


class HeadingStyle(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    font_size: float = Field(gt=0)
    bold: bool = True
    color: Optional[str] = None


class HeadingStyles(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    h1: HeadingStyle
    h2: HeadingStyle
    h3: HeadingStyle

    def for_level(self, level: int) -> Optional[HeadingStyle]:
        """Style for a heading level, None for levels the template doesn't cover."""
        return {1: self.h1, 2: self.h2, 3: self.h3}.get(level)


class TemplateRules(BaseModel):
    """Concrete style values style-related fixes read."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    font_family: str
    font_size: float = Field(gt=0)
    line_spacing: float = Field(gt=0)
    margins: PageMargins
    heading_styles: HeadingStyles


class FormatTemplate(BaseModel):
    """Named preset of option defaults and style rules."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    settings: TemplateSettings = Field(default_factory=TemplateSettings)
    rules: TemplateRules
