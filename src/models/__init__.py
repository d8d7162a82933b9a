"""Formatting engine models package.

Note: these models are the source-of-truth schemas for the API and any client types.
"""

from .document import (
    Alignment,
    DocumentModel,
    HeaderFooterInfo,
    HeaderFooterKind,
    ImageInfo,
    PageMargins,
    ParagraphInfo,
    SectionInfo,
    TableInfo,
    TargetKind,
    DEFAULT_PAGE_WIDTH,
)
from .formatting import (
    AuditEntry,
    AutoFormatOptions,
    ChangeCommand,
    ChangeOperation,
    ChangeType,
    FormatCategory,
    FormatChange,
    FormatMode,
    FormatTemplate,
    HeadingStyle,
    HeadingStyles,
    IndexRange,
    Problem,
    ProcessingMode,
    Severity,
    TemplateRules,
    TemplateSettings,
    CATEGORY_OPTION_FLAGS,
)

__all__ = [
    # Document snapshot
    "Alignment",
    "DocumentModel",
    "HeaderFooterInfo",
    "HeaderFooterKind",
    "ImageInfo",
    "PageMargins",
    "ParagraphInfo",
    "SectionInfo",
    "TableInfo",
    "TargetKind",
    "DEFAULT_PAGE_WIDTH",
    # Engine models
    "AuditEntry",
    "AutoFormatOptions",
    "ChangeCommand",
    "ChangeOperation",
    "ChangeType",
    "FormatCategory",
    "FormatChange",
    "FormatMode",
    "FormatTemplate",
    "HeadingStyle",
    "HeadingStyles",
    "IndexRange",
    "Problem",
    "ProcessingMode",
    "Severity",
    "TemplateRules",
    "TemplateSettings",
    "CATEGORY_OPTION_FLAGS",
]
