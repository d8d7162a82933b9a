"""In-memory document host.

A mutable working copy of a DocumentModel that implements every
ChangeOperation, mirroring what the word-processor host does for the local
processing mode (font normalization, whitespace cleanup, heading and list
fixes, table styling, image resizing, margins).

Deleted paragraphs are tombstoned until the next build_model() call, so
indices planned against the last snapshot stay valid for the whole pass.
build_model() compacts, re-indexes, and returns a new snapshot.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from src.models.document import (
    DocumentModel,
    ImageInfo,
    PageMargins,
    ParagraphInfo,
    SectionInfo,
    TableInfo,
    TargetKind,
)
from src.models.formatting import ChangeCommand, ChangeOperation

from .change_applier import DocumentHost

logger = logging.getLogger(__name__)


class InMemoryDocument(DocumentHost):
    """Document host backed by plain dicts."""

    def __init__(self, model: DocumentModel):
        self._paragraphs: list[dict[str, Any]] = [p.model_dump() for p in model.paragraphs]
        self._tables: list[dict[str, Any]] = [t.model_dump() for t in model.tables]
        self._images: list[dict[str, Any]] = [i.model_dump() for i in model.images]
        self._sections: list[dict[str, Any]] = [s.model_dump() for s in model.sections]
        self._headers = model.headers
        self._footers = model.footers
        self._deleted: set[int] = set()
        self.executed: list[ChangeCommand] = []

        self._handlers: dict[ChangeOperation, Callable[[ChangeCommand], Awaitable[None]]] = {
            ChangeOperation.set_font: self._set_font,
            ChangeOperation.set_heading_style: self._set_heading_style,
            ChangeOperation.set_heading_level: self._set_heading_level,
            ChangeOperation.delete_paragraphs: self._delete_paragraphs,
            ChangeOperation.set_line_spacing: self._set_line_spacing,
            ChangeOperation.set_list_level: self._set_list_level,
            ChangeOperation.style_table: self._style_table,
            ChangeOperation.resize_image: self._resize_image,
            ChangeOperation.set_alt_text: self._set_alt_text,
            ChangeOperation.set_margins: self._set_margins,
        }

    async def execute(self, command: ChangeCommand) -> None:
        handler = self._handlers.get(command.operation)
        if handler is None:
            raise ValueError(f"Unsupported operation: {command.operation}")
        await handler(command)
        self.executed.append(command)

    async def build_model(self) -> DocumentModel:
        """Compact deletions and return a fresh, re-indexed snapshot."""
        if self._deleted:
            logger.debug(f"Compacting {len(self._deleted)} deleted paragraph(s)")
            self._paragraphs = [p for i, p in enumerate(self._paragraphs) if i not in self._deleted]
            self._deleted.clear()

        return DocumentModel(
            paragraphs=tuple(
                ParagraphInfo(**{**p, "index": i}) for i, p in enumerate(self._paragraphs)
            ),
            tables=tuple(TableInfo(**{**t, "index": i}) for i, t in enumerate(self._tables)),
            images=tuple(ImageInfo(**{**img, "index": i}) for i, img in enumerate(self._images)),
            sections=tuple(SectionInfo(**{**s, "index": i}) for i, s in enumerate(self._sections)),
            headers=self._headers,
            footers=self._footers,
        )

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def _elements(self, target: TargetKind) -> list[dict[str, Any]]:
        return {
            TargetKind.paragraph: self._paragraphs,
            TargetKind.table: self._tables,
            TargetKind.image: self._images,
            TargetKind.section: self._sections,
        }[target]

    def _select(self, command: ChangeCommand, expected: TargetKind) -> list[dict[str, Any]]:
        """Elements covered by the command's range.

        Raises:
            ValueError: Wrong target kind, range out of bounds, or a paragraph
                already deleted in this pass.
        """
        if command.target != expected:
            raise ValueError(
                f"{command.operation.value} expects {expected.value} target, got {command.target.value}"
            )
        elements = self._elements(expected)
        start, end = command.range.start, command.range.end
        if end >= len(elements):
            raise ValueError(
                f"range {start}-{end} is outside {len(elements)} {expected.value}(s)"
            )
        if expected == TargetKind.paragraph:
            gone = [i for i in range(start, end + 1) if i in self._deleted]
            if gone:
                raise ValueError(f"paragraph(s) {gone} were deleted earlier in this pass")
        return elements[start:end + 1]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    # A handler that raises leaves the document untouched: params and elements
    # are checked before any write.

    async def _set_font(self, command: ChangeCommand) -> None:
        paragraphs = self._select(command, TargetKind.paragraph)
        font_name = command.params["font_name"]
        font_size = command.params["font_size"]
        for p in paragraphs:
            p["font_name"] = font_name
            p["font_size"] = font_size

    async def _set_heading_style(self, command: ChangeCommand) -> None:
        paragraphs = self._select(command, TargetKind.paragraph)
        font_size = command.params["font_size"]
        bold = command.params.get("bold", True)
        color = command.params.get("color")
        for p in paragraphs:
            p["font_size"] = font_size
            p["bold"] = bold
            if color is not None:
                p["color"] = color

    async def _set_heading_level(self, command: ChangeCommand) -> None:
        paragraphs = self._select(command, TargetKind.paragraph)
        level = command.params["heading_level"]
        for p in paragraphs:
            p["heading_level"] = level
            p["is_heading"] = True
            p["style"] = f"Heading {level}"

    async def _delete_paragraphs(self, command: ChangeCommand) -> None:
        self._select(command, TargetKind.paragraph)
        start = command.range.start
        if command.params.get("keep_first", False):
            start += 1
        self._deleted.update(range(start, command.range.end + 1))

    async def _set_line_spacing(self, command: ChangeCommand) -> None:
        paragraphs = self._select(command, TargetKind.paragraph)
        line_spacing = command.params["line_spacing"]
        for p in paragraphs:
            p["line_spacing"] = line_spacing

    async def _set_list_level(self, command: ChangeCommand) -> None:
        paragraphs = self._select(command, TargetKind.paragraph)
        level = command.params["list_level"]
        not_listed = [p["index"] for p in paragraphs if not p["is_list_item"]]
        if not_listed:
            raise ValueError(f"paragraph(s) {not_listed} are not list items")
        for p in paragraphs:
            p["list_level"] = level

    async def _style_table(self, command: ChangeCommand) -> None:
        tables = self._select(command, TargetKind.table)
        header_row = command.params.get("header_row", True)
        for t in tables:
            t["has_header_row"] = header_row

    async def _resize_image(self, command: ChangeCommand) -> None:
        images = self._select(command, TargetKind.image)
        width = command.params["width"]
        for img in images:
            if img["width"] <= width:
                continue
            aspect_ratio = img["height"] / img["width"]
            img["width"] = width
            img["height"] = width * aspect_ratio

    async def _set_alt_text(self, command: ChangeCommand) -> None:
        images = self._select(command, TargetKind.image)
        alt_text = command.params["alt_text"]
        for img in images:
            img["alt_text"] = alt_text
            img["has_alt_text"] = True

    async def _set_margins(self, command: ChangeCommand) -> None:
        sections = self._select(command, TargetKind.section)
        margins = PageMargins(**{k: command.params[k] for k in ("top", "bottom", "left", "right")})
        for s in sections:
            s["page_margins"] = margins.model_dump()
