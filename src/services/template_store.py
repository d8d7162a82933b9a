"""Template store.

Named FormatTemplate presets. Templates are read-only reference data: they
supply option defaults (explicit caller options win) and the concrete style
values that style-related fixes read.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Optional

from src.models.document import PageMargins
from src.models.formatting import (
    AutoFormatOptions,
    FormatTemplate,
    HeadingStyle,
    HeadingStyles,
    TemplateRules,
    TemplateSettings,
)

from .errors import TemplateNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_ID = os.getenv("DEFAULT_TEMPLATE_ID", "standard")

# 72 points = 1 inch
ONE_INCH = 72.0


DEFAULT_TEMPLATES: tuple[FormatTemplate, ...] = (
    FormatTemplate(
        id="standard",
        name="Standard / Report",
        description="Clean, professional formatting suitable for most business documents.",
        settings=TemplateSettings(
            enable_fonts=True,
            enable_headings=True,
            enable_spacing=True,
            enable_lists=True,
            enable_tables=True,
            enable_images=True,
            enable_margins=True,
        ),
        rules=TemplateRules(
            font_family="Calibri",
            font_size=11,
            line_spacing=1.15,
            margins=PageMargins(top=ONE_INCH, bottom=ONE_INCH, left=ONE_INCH, right=ONE_INCH),
            heading_styles=HeadingStyles(
                h1=HeadingStyle(font_size=16, bold=True, color="#2F5496"),
                h2=HeadingStyle(font_size=13, bold=True, color="#2F5496"),
                h3=HeadingStyle(font_size=12, bold=True, color="#1F3763"),
            ),
        ),
    ),
    FormatTemplate(
        id="academic",
        name="Academic / IEEE",
        description="Strict formatting for academic papers (Times New Roman, double spacing).",
        settings=TemplateSettings(
            enable_fonts=True,
            enable_headings=True,
            enable_spacing=True,
            enable_citations=True,
            enable_margins=True,
        ),
        rules=TemplateRules(
            font_family="Times New Roman",
            font_size=12,
            line_spacing=2.0,
            margins=PageMargins(top=ONE_INCH, bottom=ONE_INCH, left=ONE_INCH, right=ONE_INCH),
            heading_styles=HeadingStyles(
                h1=HeadingStyle(font_size=14, bold=True, color="#000000"),
                h2=HeadingStyle(font_size=12, bold=True, color="#000000"),
                h3=HeadingStyle(font_size=12, bold=True, color="#000000"),
            ),
        ),
    ),
    FormatTemplate(
        id="resume",
        name="Modern Resume",
        description="Sleek, compact formatting to maximize space.",
        settings=TemplateSettings(
            enable_fonts=True,
            enable_headings=True,
            enable_lists=True,
            enable_margins=True,
        ),
        rules=TemplateRules(
            font_family="Arial",
            font_size=10,
            line_spacing=1.0,
            margins=PageMargins(top=36, bottom=36, left=54, right=54),
            heading_styles=HeadingStyles(
                h1=HeadingStyle(font_size=18, bold=True, color="#000000"),
                h2=HeadingStyle(font_size=14, bold=True, color="#666666"),
                h3=HeadingStyle(font_size=11, bold=True, color="#000000"),
            ),
        ),
    ),
    FormatTemplate(
        id="formal",
        name="Formal / Legal",
        description="Traditional formatting with generous margins and serif fonts.",
        settings=TemplateSettings(
            enable_fonts=True,
            enable_headings=True,
            enable_spacing=True,
            enable_lists=True,
        ),
        rules=TemplateRules(
            font_family="Georgia",
            font_size=11,
            line_spacing=1.5,
            margins=PageMargins(top=90, bottom=90, left=90, right=90),
            heading_styles=HeadingStyles(
                h1=HeadingStyle(font_size=14, bold=True, color="#000000"),
                h2=HeadingStyle(font_size=12, bold=True, color="#000000"),
                h3=HeadingStyle(font_size=11, bold=True, color="#000000"),
            ),
        ),
    ),
    FormatTemplate(
        id="corporate",
        name="Corporate",
        description="Bold, large headings over a compact sans-serif body for company documents.",
        settings=TemplateSettings(
            enable_fonts=True,
            enable_headings=True,
            enable_spacing=True,
            enable_tables=True,
            enable_accessibility=True,
        ),
        rules=TemplateRules(
            font_family="Segoe UI",
            font_size=10,
            line_spacing=1.15,
            margins=PageMargins(top=ONE_INCH, bottom=ONE_INCH, left=ONE_INCH, right=ONE_INCH),
            heading_styles=HeadingStyles(
                h1=HeadingStyle(font_size=18, bold=True, color="#1F4E79"),
                h2=HeadingStyle(font_size=14, bold=True, color="#1F4E79"),
                h3=HeadingStyle(font_size=12, bold=True, color="#404040"),
            ),
        ),
    ),
)


class TemplateStore:
    """Read-only lookup of format templates by id."""

    def __init__(self, templates: Optional[Iterable[FormatTemplate]] = None):
        source = DEFAULT_TEMPLATES if templates is None else templates
        self._templates: dict[str, FormatTemplate] = {t.id: t for t in source}

    def get(self, template_id: str) -> FormatTemplate:
        """Return a template.

        Raises:
            TemplateNotFoundError: If no template has this id.
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def list(self) -> list[FormatTemplate]:
        return list(self._templates.values())

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def resolve_options(self, options: AutoFormatOptions) -> AutoFormatOptions:
        """Merge the selected template's settings under the caller's options.

        Template values act as defaults; any field the caller set explicitly
        keeps the caller's value.

        Raises:
            TemplateNotFoundError: If options.template_id is unknown.
        """
        template = self.get(options.template_id)

        merged = options.model_dump()
        for key, value in template.settings.model_dump(exclude_none=True).items():
            if key not in options.model_fields_set:
                merged[key] = value

        resolved = AutoFormatOptions(**merged)
        logger.debug(f"Resolved options for template '{template.id}': {merged}")
        return resolved


_default_store: Optional[TemplateStore] = None


def get_template_store() -> TemplateStore:
    """Get the default template store singleton."""
    global _default_store
    if _default_store is None:
        _default_store = TemplateStore()
    return _default_store
