"""Integration tests for the auto-format API.

- GET /health
- GET /format/templates, /format/templates/{id}
- POST /format/analyze
- POST /format/apply
- GET/DELETE /format/audit
"""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import AsyncClient
from pymongo.errors import ServerSelectionTimeoutError


def _paragraph(index: int, **fields: Any) -> dict:
    paragraph = {
        "index": index,
        "text": f"Paragraph {index}",
        "font_name": "Calibri",
        "font_size": 11,
        "line_spacing": 1.15,
    }
    paragraph.update(fields)
    return paragraph


@pytest_asyncio.fixture
async def messy_document() -> dict:
    return {
        "paragraphs": [
            _paragraph(0, text="Overview", style="Heading 1", is_heading=True, heading_level=1, font_size=12),
            _paragraph(1, font_name="Arial"),
            _paragraph(2, text=""),
            _paragraph(3, text=""),
        ],
        "images": [{"index": 0, "width": 100, "height": 80}],
    }


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "ok"
        assert data["templates"] == 5


class TestTemplates:

    @pytest.mark.asyncio
    async def test_list_templates(self, client: AsyncClient):
        response = await client.get("/format/templates")
        assert response.status_code == 200
        body = response.json()
        assert body["error"] is None
        assert "corporate" in [t["id"] for t in body["data"]]

    @pytest.mark.asyncio
    async def test_get_template(self, client: AsyncClient):
        response = await client.get("/format/templates/academic")
        assert response.status_code == 200
        assert response.json()["data"]["rules"]["font_family"] == "Times New Roman"

    @pytest.mark.asyncio
    async def test_unknown_template_404(self, client: AsyncClient):
        response = await client.get("/format/templates/missing")
        assert response.status_code == 404
        body = response.json()
        assert body["data"] is None
        assert body["error"]["code"] == "TEMPLATE_NOT_FOUND"


class TestAnalyze:

    @pytest.mark.asyncio
    async def test_analyze_returns_problems_and_changes(self, client: AsyncClient, messy_document: dict):
        response = await client.post("/format/analyze", json={"document": messy_document})
        assert response.status_code == 200
        data = response.json()["data"]

        assert [p["id"] for p in data["problems"]] == ["body-font-1", "heading-font-0", "blank-lines-2"]
        assert len(data["changes"]) == 3
        change = data["changes"][0]
        assert change["range"] == {"start": 1, "end": 1}
        assert change["category"] == "Fonts"
        assert data["options"]["template_id"] == "standard"

    @pytest.mark.asyncio
    async def test_analyze_unknown_template(self, client: AsyncClient, messy_document: dict):
        response = await client.post(
            "/format/analyze",
            json={"document": messy_document, "options": {"template_id": "nope"}},
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_document_rejected(self, client: AsyncClient):
        response = await client.post(
            "/format/analyze",
            json={"document": {"paragraphs": [{"index": 0, "font_size": -1}]}},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_indices_must_match_positions(self, client: AsyncClient):
        response = await client.post(
            "/format/analyze",
            json={"document": {"paragraphs": [_paragraph(0), _paragraph(3)]}},
        )
        assert response.status_code == 422


class TestApply:

    @pytest.mark.asyncio
    async def test_apply_auto_fix(self, client: AsyncClient, messy_document: dict):
        response = await client.post(
            "/format/apply",
            json={"document": messy_document, "options": {"mode": "auto-fix"}},
        )
        assert response.status_code == 200
        data = response.json()["data"]

        assert data["applied"] == ["chg-heading-font-0", "chg-body-font-1", "chg-blank-lines-2"]
        assert data["audit"]["changes_applied"] == 3
        assert data["summary"].startswith("Applied 3 changes in")
        paragraphs = data["document"]["paragraphs"]
        assert len(paragraphs) == 3
        assert paragraphs[0]["font_size"] == 16
        assert paragraphs[1]["font_name"] == "Calibri"

    @pytest.mark.asyncio
    async def test_apply_with_unchecked_change(self, client: AsyncClient, messy_document: dict):
        response = await client.post(
            "/format/apply",
            json={"document": messy_document, "disabled_change_ids": ["chg-blank-lines-2"]},
        )
        data = response.json()["data"]
        assert data["skipped"] == ["chg-blank-lines-2"]
        assert len(data["document"]["paragraphs"]) == 4

    @pytest.mark.asyncio
    async def test_apply_suggest(self, client: AsyncClient, messy_document: dict):
        response = await client.post(
            "/format/apply",
            json={"document": messy_document, "options": {"mode": "suggest"}},
        )
        data = response.json()["data"]
        assert data["applied"] == []
        assert data["audit"]["changes_applied"] == 0
        assert data["document"]["paragraphs"][1]["font_name"] == "Arial"


class TestAudit:

    @pytest.mark.asyncio
    async def test_audit_records_each_pass(self, client: AsyncClient, messy_document: dict):
        await client.post("/format/apply", json={"document": messy_document, "options": {"mode": "auto-fix"}})
        await client.post("/format/apply", json={"document": messy_document, "options": {"mode": "suggest"}})

        response = await client.get("/format/audit")
        entries = response.json()["data"]["entries"]
        assert [e["changes_applied"] for e in entries] == [0, 3]
        assert entries[1]["categories"] == ["Headings", "Fonts", "Spacing"]

        limited = await client.get("/format/audit", params={"limit": 1})
        assert len(limited.json()["data"]["entries"]) == 1

    @pytest.mark.asyncio
    async def test_clear_audit(self, client: AsyncClient, messy_document: dict):
        await client.post("/format/apply", json={"document": messy_document})

        response = await client.delete("/format/audit")
        assert response.json()["data"] == {"removed": 1}

        response = await client.get("/format/audit")
        assert response.json()["data"]["entries"] == []

    @pytest.mark.asyncio
    async def test_database_unavailable(self, client: AsyncClient):
        """Mongo outages surface as 503 DATABASE_UNAVAILABLE."""
        failing_log = AsyncMock()
        failing_log.list_entries.side_effect = ServerSelectionTimeoutError("no servers available")

        with patch("src.api.routes.formatting.get_audit_log", return_value=failing_log):
            response = await client.get("/format/audit")

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "DATABASE_UNAVAILABLE"
