"""Built-in formatting rules.

Fast, deterministic checks over a DocumentModel:
- Fonts: body text that strays from the template font
- Headings: heading sizes vs. template, heading level skips
- Spacing: repeated blank paragraphs, line spacing vs. template
- Lists: list level jumps
- Tables: missing header rows
- Images: oversized images, missing alt text (Accessibility)
- Margins: section margins vs. template

Each rule is built against a template so fixes can read its style values.
Problem ids are "<rule-id>-<first index>", unique within a pass.
"""

from __future__ import annotations

from collections import Counter
from functools import partial
from typing import Optional

from src.models.document import DocumentModel, TargetKind
from src.models.formatting import (
    ChangeCommand,
    ChangeOperation,
    ChangeType,
    FormatCategory,
    FormatChange,
    FormatTemplate,
    IndexRange,
    Problem,
    Severity,
    TemplateRules,
)

from .rule_registry import FormatRule, RuleRegistry


# ============================================================================
# Configuration
# ============================================================================

# Fallback printable width when the model has no sections (6.5in)
DEFAULT_MAX_IMAGE_WIDTH = 468.0

# Tolerances for float comparisons
LINE_SPACING_TOLERANCE = 0.01
SIZE_TOLERANCE = 0.5

STANDARD_TABLE_STYLE = "Grid Table 4 - Accent 1"


def _contiguous_runs(indices: list[int]) -> list[tuple[int, int]]:
    """Group sorted indices into inclusive (start, end) runs."""
    runs: list[tuple[int, int]] = []
    for idx in indices:
        if runs and idx == runs[-1][1] + 1:
            runs[-1] = (runs[-1][0], idx)
        else:
            runs.append((idx, idx))
    return runs


def _change_id(problem: Problem) -> str:
    return f"chg-{problem.id}"


# ============================================================================
# Fonts
# ============================================================================

def detect_body_font(model: DocumentModel, rules: TemplateRules) -> list[Problem]:
    """Flag runs of body paragraphs not in the template font family/size."""
    flagged = [
        i for i, p in enumerate(model.paragraphs)
        if not p.is_blank and not p.is_heading and (
            p.font_name != rules.font_family
            or abs(p.font_size - rules.font_size) > SIZE_TOLERANCE
        )
    ]

    problems = []
    for start, end in _contiguous_runs(flagged):
        fonts = Counter(
            f"{p.font_name} {p.font_size:g}pt" for p in model.paragraphs[start:end + 1]
        )
        found = ", ".join(name for name, _ in fonts.most_common())
        problems.append(Problem(
            id=f"body-font-{start}",
            description=f"Inconsistent font {found} (should be {rules.font_family} {rules.font_size:g}pt)",
            severity=Severity.warning,
            affected_range=IndexRange(start=start, end=end),
            metadata={"found": found},
        ))
    return problems


def fix_body_font(problem: Problem, rules: TemplateRules) -> FormatChange:
    target = f"{rules.font_family} {rules.font_size:g}pt"
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.style,
        category=FormatCategory.fonts,
        description=f"Normalize fonts to {target}",
        before=problem.metadata.get("found", "Mixed fonts"),
        after=target,
        command=ChangeCommand(
            operation=ChangeOperation.set_font,
            range=problem.affected_range,
            params={"font_name": rules.font_family, "font_size": rules.font_size},
        ),
    )


# ============================================================================
# Headings
# ============================================================================

def detect_heading_font(model: DocumentModel, rules: TemplateRules) -> list[Problem]:
    """Flag h1-h3 paragraphs whose size or weight differs from the template."""
    problems = []
    for i, p in enumerate(model.paragraphs):
        if not p.is_heading:
            continue
        style = rules.heading_styles.for_level(p.heading_level)
        if style is None:
            continue
        if abs(p.font_size - style.font_size) <= SIZE_TOLERANCE and p.bold == style.bold:
            continue

        problems.append(Problem(
            id=f"heading-font-{i}",
            description=(
                f"Heading {p.heading_level} is {p.font_size:g}pt"
                f"{' bold' if p.bold else ''} (should be {style.font_size:g}pt"
                f"{' bold' if style.bold else ''})"
            ),
            severity=Severity.warning,
            affected_range=IndexRange(start=i, end=i),
            metadata={"heading_level": p.heading_level, "font_size": p.font_size, "bold": p.bold},
        ))
    return problems


def fix_heading_font(problem: Problem, rules: TemplateRules) -> FormatChange:
    level = problem.metadata["heading_level"]
    style = rules.heading_styles.for_level(level)
    if style is None:
        raise ValueError(f"Template has no style for heading level {level}")

    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.style,
        category=FormatCategory.headings,
        description=f"Apply template style to heading {level}",
        before=f"H{level}: {problem.metadata['font_size']:g}pt",
        after=f"H{level}: {style.font_size:g}pt{' bold' if style.bold else ''}",
        command=ChangeCommand(
            operation=ChangeOperation.set_heading_style,
            range=problem.affected_range,
            params={
                "heading_level": level,
                "font_size": style.font_size,
                "bold": style.bold,
                "color": style.color,
            },
        ),
    )


def detect_heading_hierarchy(model: DocumentModel) -> list[Problem]:
    """Check for heading level skips (e.g., h1 -> h3)."""
    problems = []
    prev_level = 0

    for i, p in enumerate(model.paragraphs):
        if not p.is_heading or p.heading_level == 0:
            continue
        level = p.heading_level
        if prev_level > 0 and level > prev_level + 1:
            problems.append(Problem(
                id=f"heading-hierarchy-{i}",
                description=f"Heading level skipped: H{prev_level} -> H{level}",
                severity=Severity.warning,
                affected_range=IndexRange(start=i, end=i),
                metadata={"prev_level": prev_level, "current_level": level},
            ))
        prev_level = level

    return problems


def fix_heading_hierarchy(problem: Problem) -> FormatChange:
    current = problem.metadata["current_level"]
    target = problem.metadata["prev_level"] + 1
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.style,
        category=FormatCategory.headings,
        description=f"Use Heading {target} instead of Heading {current}",
        before=f"Heading {current}",
        after=f"Heading {target}",
        command=ChangeCommand(
            operation=ChangeOperation.set_heading_level,
            range=problem.affected_range,
            params={"heading_level": target},
        ),
    )


# ============================================================================
# Spacing
# ============================================================================

def detect_blank_lines(model: DocumentModel) -> list[Problem]:
    """Flag runs of two or more consecutive empty paragraphs."""
    blank = [i for i, p in enumerate(model.paragraphs) if p.is_blank]

    problems = []
    for start, end in _contiguous_runs(blank):
        count = end - start + 1
        if count < 2:
            continue
        problems.append(Problem(
            id=f"blank-lines-{start}",
            description=f"Multiple blank lines found ({count})",
            severity=Severity.info,
            affected_range=IndexRange(start=start, end=end),
            metadata={"count": count},
        ))
    return problems


def fix_blank_lines(problem: Problem) -> FormatChange:
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.spacing,
        category=FormatCategory.spacing,
        description="Remove extra blank lines",
        before=f"{problem.affected_range.size} blank lines",
        after="Single blank line",
        command=ChangeCommand(
            operation=ChangeOperation.delete_paragraphs,
            range=problem.affected_range,
            params={"keep_first": True},
        ),
    )


def detect_line_spacing(model: DocumentModel, rules: TemplateRules) -> list[Problem]:
    """Flag runs of body paragraphs whose line spacing differs from the template."""
    flagged = [
        i for i, p in enumerate(model.paragraphs)
        if not p.is_blank and not p.is_heading
        and abs(p.line_spacing - rules.line_spacing) > LINE_SPACING_TOLERANCE
    ]
    return [
        Problem(
            id=f"line-spacing-{start}",
            description=f"Line spacing differs from template ({rules.line_spacing:g})",
            severity=Severity.info,
            affected_range=IndexRange(start=start, end=end),
            metadata={"spacing": sorted({model.paragraphs[i].line_spacing for i in range(start, end + 1)})},
        )
        for start, end in _contiguous_runs(flagged)
    ]


def fix_line_spacing(problem: Problem, rules: TemplateRules) -> FormatChange:
    found = ", ".join(f"{s:g}" for s in problem.metadata.get("spacing", []))
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.spacing,
        category=FormatCategory.spacing,
        description=f"Set line spacing to {rules.line_spacing:g}",
        before=f"Line spacing {found}" if found else "Mixed line spacing",
        after=f"Line spacing {rules.line_spacing:g}",
        command=ChangeCommand(
            operation=ChangeOperation.set_line_spacing,
            range=problem.affected_range,
            params={"line_spacing": rules.line_spacing},
        ),
    )


# ============================================================================
# Lists
# ============================================================================

def detect_list_levels(model: DocumentModel) -> list[Problem]:
    """Flag list items nested more than one level below the previous item."""
    problems = []
    prev_level: Optional[int] = None

    for i, p in enumerate(model.paragraphs):
        if not p.is_list_item:
            prev_level = None
            continue

        level = max(p.list_level, 0)
        allowed = 0 if prev_level is None else prev_level + 1
        if level > allowed:
            problems.append(Problem(
                id=f"list-levels-{i}",
                description=f"List item jumps to level {level} (expected at most {allowed})",
                severity=Severity.warning,
                affected_range=IndexRange(start=i, end=i),
                metadata={"current_level": level, "target_level": allowed},
            ))
            level = allowed
        prev_level = level

    return problems


def fix_list_levels(problem: Problem) -> FormatChange:
    target = problem.metadata["target_level"]
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.list,
        category=FormatCategory.lists,
        description="Normalize list nesting",
        before=f"Level {problem.metadata['current_level']}",
        after=f"Level {target}",
        command=ChangeCommand(
            operation=ChangeOperation.set_list_level,
            range=problem.affected_range,
            params={"list_level": target},
        ),
    )


# ============================================================================
# Tables
# ============================================================================

def detect_table_headers(model: DocumentModel) -> list[Problem]:
    return [
        Problem(
            id=f"table-header-{i}",
            description=f"Table {i + 1} has no header row",
            severity=Severity.warning,
            affected_range=IndexRange(start=i, end=i),
            target=TargetKind.table,
        )
        for i, t in enumerate(model.tables)
        if not t.has_header_row and t.row_count > 1
    ]


def fix_table_headers(problem: Problem) -> FormatChange:
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.table,
        category=FormatCategory.tables,
        description="Apply standard table style",
        before="Unstyled table",
        after=STANDARD_TABLE_STYLE,
        command=ChangeCommand(
            operation=ChangeOperation.style_table,
            target=TargetKind.table,
            range=problem.affected_range,
            params={"style": STANDARD_TABLE_STYLE, "header_row": True},
        ),
    )


# ============================================================================
# Images
# ============================================================================

def _max_image_width(model: DocumentModel) -> float:
    if not model.sections:
        return DEFAULT_MAX_IMAGE_WIDTH
    return model.sections[0].printable_width


def detect_image_size(model: DocumentModel) -> list[Problem]:
    """Flag images wider than the printable page width."""
    max_width = _max_image_width(model)
    return [
        Problem(
            id=f"image-size-{i}",
            description=f"Image {i + 1} is wider than the page ({img.width:g}pt > {max_width:g}pt)",
            severity=Severity.warning,
            affected_range=IndexRange(start=i, end=i),
            target=TargetKind.image,
            metadata={"width": img.width, "max_width": max_width},
        )
        for i, img in enumerate(model.images)
        if img.width > max_width + SIZE_TOLERANCE
    ]


def fix_image_size(problem: Problem) -> FormatChange:
    max_width = problem.metadata["max_width"]
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.image,
        category=FormatCategory.images,
        description="Resize image to fit page",
        before=f"{problem.metadata['width']:g}pt wide",
        after=f"{max_width:g}pt wide",
        command=ChangeCommand(
            operation=ChangeOperation.resize_image,
            target=TargetKind.image,
            range=problem.affected_range,
            params={"width": max_width},
        ),
    )


def detect_missing_alt_text(model: DocumentModel) -> list[Problem]:
    return [
        Problem(
            id=f"image-alt-text-{i}",
            description="Image missing alt text",
            severity=Severity.warning,
            affected_range=IndexRange(start=i, end=i),
            target=TargetKind.image,
        )
        for i, img in enumerate(model.images)
        if not img.has_alt_text
    ]


def fix_missing_alt_text(problem: Problem) -> FormatChange:
    alt_text = f"Figure {problem.affected_range.start + 1}"
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.image,
        category=FormatCategory.accessibility,
        description="Add placeholder alt text",
        before="No alt text",
        after=f'Alt text "{alt_text}"',
        command=ChangeCommand(
            operation=ChangeOperation.set_alt_text,
            target=TargetKind.image,
            range=problem.affected_range,
            params={"alt_text": alt_text},
        ),
    )


# ============================================================================
# Margins
# ============================================================================

def detect_page_margins(model: DocumentModel, rules: TemplateRules) -> list[Problem]:
    expected = rules.margins
    problems = []
    for i, section in enumerate(model.sections):
        m = section.page_margins
        if (m.top, m.bottom, m.left, m.right) == (expected.top, expected.bottom, expected.left, expected.right):
            continue
        problems.append(Problem(
            id=f"page-margins-{i}",
            description=f"Section {i + 1} margins differ from template",
            severity=Severity.info,
            affected_range=IndexRange(start=i, end=i),
            target=TargetKind.section,
            metadata={"margins": m.model_dump()},
        ))
    return problems


def fix_page_margins(problem: Problem, rules: TemplateRules) -> FormatChange:
    m = rules.margins
    before = problem.metadata.get("margins", {})
    return FormatChange(
        id=_change_id(problem),
        type=ChangeType.page,
        category=FormatCategory.margins,
        description="Set page margins",
        before=" / ".join(f"{before.get(k, 0):g}" for k in ("top", "bottom", "left", "right")),
        after=f"{m.top:g} / {m.bottom:g} / {m.left:g} / {m.right:g}",
        command=ChangeCommand(
            operation=ChangeOperation.set_margins,
            target=TargetKind.section,
            range=problem.affected_range,
            params=m.model_dump(),
        ),
    )


# ============================================================================
# Registry construction
# ============================================================================

def build_default_rules(template: FormatTemplate) -> list[FormatRule]:
    """Built-in rules bound to a template's style values, in detection order."""
    rules = template.rules
    return [
        FormatRule(
            id="body-font",
            name="Body font",
            category=FormatCategory.fonts.value,
            detect=partial(detect_body_font, rules=rules),
            generate_fix=partial(fix_body_font, rules=rules),
        ),
        FormatRule(
            id="heading-font",
            name="Heading font",
            category=FormatCategory.headings.value,
            detect=partial(detect_heading_font, rules=rules),
            generate_fix=partial(fix_heading_font, rules=rules),
        ),
        FormatRule(
            id="heading-hierarchy",
            name="Heading hierarchy",
            category=FormatCategory.headings.value,
            detect=detect_heading_hierarchy,
            generate_fix=fix_heading_hierarchy,
        ),
        FormatRule(
            id="blank-lines",
            name="Extra blank lines",
            category=FormatCategory.spacing.value,
            detect=detect_blank_lines,
            generate_fix=fix_blank_lines,
        ),
        FormatRule(
            id="line-spacing",
            name="Line spacing",
            category=FormatCategory.spacing.value,
            detect=partial(detect_line_spacing, rules=rules),
            generate_fix=partial(fix_line_spacing, rules=rules),
        ),
        FormatRule(
            id="list-levels",
            name="List nesting",
            category=FormatCategory.lists.value,
            detect=detect_list_levels,
            generate_fix=fix_list_levels,
        ),
        FormatRule(
            id="table-header",
            name="Table header row",
            category=FormatCategory.tables.value,
            detect=detect_table_headers,
            generate_fix=fix_table_headers,
        ),
        FormatRule(
            id="image-size",
            name="Image size",
            category=FormatCategory.images.value,
            detect=detect_image_size,
            generate_fix=fix_image_size,
        ),
        FormatRule(
            id="image-alt-text",
            name="Image alt text",
            category=FormatCategory.accessibility.value,
            detect=detect_missing_alt_text,
            generate_fix=fix_missing_alt_text,
        ),
        FormatRule(
            id="page-margins",
            name="Page margins",
            category=FormatCategory.margins.value,
            detect=partial(detect_page_margins, rules=rules),
            generate_fix=partial(fix_page_margins, rules=rules),
        ),
    ]


def create_default_registry(template: FormatTemplate) -> RuleRegistry:
    return RuleRegistry(build_default_rules(template))
