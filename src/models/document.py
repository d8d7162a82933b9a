"""Document structure snapshot models.

A DocumentModel is captured once per scan from the host document and is never
mutated. Indices are positions within their own sequence and are only stable
inside a single snapshot; after any change is applied a new scan is required.

Pydantic v2. Models are frozen so rules cannot mutate the snapshot they read.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator


# US Letter width in points
DEFAULT_PAGE_WIDTH = 612.0


class Alignment(str, Enum):
    """Paragraph alignment as reported by the host."""
    left = "left"
    centered = "centered"
    right = "right"
    justified = "justified"
    unknown = "unknown"


class TargetKind(str, Enum):
    """Index space a range refers to."""
    paragraph = "paragraph"
    table = "table"
    image = "image"
    section = "section"


class ParagraphInfo(BaseModel):
    """A single paragraph of the body."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0, description="Position in document (snapshot-local)")
    text: str = ""
    style: str = "Normal"
    font_name: str = "Calibri"
    font_size: float = Field(default=11.0, gt=0)
    bold: bool = False
    color: Optional[str] = Field(default=None, description="Hex font color, None when inherited")
    alignment: Alignment = Alignment.left
    line_spacing: float = Field(default=1.0, gt=0)
    is_list_item: bool = False
    list_level: int = Field(default=-1, ge=-1, description="-1 when not a list item")
    is_heading: bool = False
    heading_level: int = Field(default=0, ge=0, le=9, description="0 when not a heading")

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


class TableInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0)
    row_count: int = Field(default=0, ge=0)
    column_count: int = Field(default=0, ge=0)
    has_header_row: bool = True


class ImageInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0)
    width: float = Field(ge=0)
    height: float = Field(ge=0)
    has_alt_text: bool = False
    alt_text: str = ""
    wrapping: str = "inline"


class PageMargins(BaseModel):
    """Page margins in points (72 points = 1 inch)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    top: float = Field(ge=0)
    bottom: float = Field(ge=0)
    left: float = Field(ge=0)
    right: float = Field(ge=0)


class SectionInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(ge=0)
    page_margins: PageMargins
    page_width: float = Field(default=DEFAULT_PAGE_WIDTH, gt=0)

    @property
    def printable_width(self) -> float:
        """Width available between the left and right margins."""
        return self.page_width - self.page_margins.left - self.page_margins.right


class HeaderFooterKind(str, Enum):
    header = "header"
    footer = "footer"


class HeaderFooterInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: HeaderFooterKind
    text: str = ""


class DocumentModel(BaseModel):
    """Immutable structural snapshot of the host document."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    paragraphs: tuple[ParagraphInfo, ...] = ()
    tables: tuple[TableInfo, ...] = ()
    images: tuple[ImageInfo, ...] = ()
    sections: tuple[SectionInfo, ...] = ()
    headers: tuple[HeaderFooterInfo, ...] = ()
    footers: tuple[HeaderFooterInfo, ...] = ()

    @model_validator(mode="after")
    def _check_indices(self) -> "DocumentModel":
        """Each element's index must equal its position in its sequence."""
        for name in ("paragraphs", "tables", "images", "sections"):
            for position, element in enumerate(getattr(self, name)):
                if element.index != position:
                    raise ValueError(
                        f"{name}[{position}] has index {element.index}; expected {position}"
                    )
        return self

    @property
    def paragraph_count(self) -> int:
        return len(self.paragraphs)

    def element_count(self, target: TargetKind) -> int:
        """Number of addressable positions in the given index space."""
        if target == TargetKind.paragraph:
            return len(self.paragraphs)
        if target == TargetKind.table:
            return len(self.tables)
        if target == TargetKind.image:
            return len(self.images)
        if target == TargetKind.section:
            return len(self.sections)
        raise ValueError(f"Unknown target kind: {target}")
