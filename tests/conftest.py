"""Pytest fixtures for testing."""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from src.api.main import app
from src.db import mongo
from src.models import (
    ChangeCommand,
    ChangeOperation,
    ChangeType,
    DocumentModel,
    FormatCategory,
    FormatChange,
    IndexRange,
    PageMargins,
    ParagraphInfo,
    SectionInfo,
    TargetKind,
)
from src.services.audit_log import InMemoryAuditLog, set_audit_log
from src.services.template_store import TemplateStore


@pytest_asyncio.fixture
async def mock_db() -> AsyncGenerator[Any, None]:
    """Provide a mock MongoDB database for testing."""
    mock_client = AsyncMongoMockClient()
    mock_database = mock_client[mongo.DATABASE_NAME]

    mongo.set_client(mock_client)

    yield mock_database

    mongo.set_client(None)


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    """Fresh in-memory audit log, also installed as the API default."""
    log = InMemoryAuditLog()
    set_audit_log(log)
    yield log
    set_audit_log(None)


@pytest_asyncio.fixture
async def client(audit_log: InMemoryAuditLog) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def template_store() -> TemplateStore:
    return TemplateStore()


@pytest.fixture
def make_paragraphs() -> Callable[..., tuple[ParagraphInfo, ...]]:
    """Build paragraphs from keyword dicts, filling in index and body defaults
    that conform to the standard template (Calibri 11pt, 1.15 spacing)."""

    def _make(*specs: dict[str, Any]) -> tuple[ParagraphInfo, ...]:
        paragraphs = []
        for i, spec in enumerate(specs):
            fields = {
                "text": f"Paragraph {i}",
                "font_name": "Calibri",
                "font_size": 11,
                "line_spacing": 1.15,
            }
            fields.update(spec)
            paragraphs.append(ParagraphInfo(index=i, **fields))
        return tuple(paragraphs)

    return _make


@pytest.fixture
def one_inch_section() -> SectionInfo:
    return SectionInfo(index=0, page_margins=PageMargins(top=72, bottom=72, left=72, right=72))


@pytest.fixture
def clean_document(make_paragraphs, one_inch_section) -> DocumentModel:
    """A document the standard template has nothing to say about."""
    return DocumentModel(
        paragraphs=make_paragraphs(
            {"text": "Introduction", "style": "Heading 1", "is_heading": True,
             "heading_level": 1, "font_size": 16, "bold": True},
            {"text": "Body text one."},
            {"text": "Body text two."},
        ),
        sections=(one_inch_section,),
    )


@pytest.fixture
def make_change() -> Callable[..., FormatChange]:
    """Build a FormatChange with a given id and range."""

    def _make(
        change_id: str,
        start: int,
        end: int,
        *,
        category: FormatCategory = FormatCategory.fonts,
        target: TargetKind = TargetKind.paragraph,
        enabled: bool = True,
        operation: ChangeOperation = ChangeOperation.set_font,
        params: dict[str, Any] | None = None,
    ) -> FormatChange:
        return FormatChange(
            id=change_id,
            type=ChangeType.style,
            category=category,
            description=f"Change {change_id}",
            before="before",
            after="after",
            command=ChangeCommand(
                operation=operation,
                target=target,
                range=IndexRange(start=start, end=end),
                params=params if params is not None else {"font_name": "Calibri", "font_size": 11},
            ),
            enabled=enabled,
        )

    return _make
