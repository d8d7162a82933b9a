"""Auto-format endpoints.

- GET /format/templates: List available templates
- GET /format/templates/{template_id}: Get one template
- POST /format/analyze: Detect problems and propose changes for a document
- POST /format/apply: Analyze and apply changes to a document, per mode
- GET /format/audit: Recent apply passes, newest first
- DELETE /format/audit: Clear the audit log

All responses use the { data, error } envelope pattern.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from src.api.response import success_response
from src.models import (
    AuditEntry,
    AutoFormatOptions,
    DocumentModel,
    FormatChange,
    FormatTemplate,
    Problem,
)
from src.services.audit_log import get_audit_log
from src.services.change_applier import FailedChange
from src.services.document_host import InMemoryDocument
from src.services.format_pipeline import analyze_document, run_auto_format
from src.services.template_store import DEFAULT_TEMPLATE_ID, get_template_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/format", tags=["Formatting"])


def _default_options() -> AutoFormatOptions:
    return AutoFormatOptions(template_id=DEFAULT_TEMPLATE_ID)


# ============================================================================
# Request/Response Models
# ============================================================================

class AnalyzeRequest(BaseModel):
    """Request to analyze a document snapshot."""
    document: DocumentModel
    options: AutoFormatOptions = Field(default_factory=_default_options)


class AnalyzeData(BaseModel):
    options: AutoFormatOptions
    problems: list[Problem]
    changes: list[FormatChange]


class ApplyRequest(BaseModel):
    """Request to analyze and apply changes to a document snapshot."""
    document: DocumentModel
    options: AutoFormatOptions = Field(default_factory=_default_options)
    disabled_change_ids: list[str] = Field(
        default_factory=list,
        description="Changes the user unchecked (semi-auto review)",
    )


class ApplyData(BaseModel):
    audit: AuditEntry
    summary: str
    applied: list[str]
    deferred: list[str]
    skipped: list[str]
    failed: list[FailedChange]
    document: DocumentModel = Field(description="Document after the apply pass")


class AuditData(BaseModel):
    entries: list[AuditEntry]


# ============================================================================
# Endpoints
# ============================================================================

@router.get("/templates")
async def list_templates() -> dict:
    templates: list[FormatTemplate] = get_template_store().list()
    return success_response([t.model_dump(mode="json") for t in templates])


@router.get("/templates/{template_id}")
async def get_template(template_id: str) -> dict:
    """Get a template. Unknown ids map to TEMPLATE_NOT_FOUND."""
    return success_response(get_template_store().get(template_id))


@router.post("/analyze")
async def analyze(request: AnalyzeRequest) -> dict:
    analysis = analyze_document(
        request.document,
        request.options,
        template_store=get_template_store(),
    )
    data = AnalyzeData(
        options=analysis.options,
        problems=analysis.problems,
        changes=analysis.changes,
    )
    return success_response(data)


@router.post("/apply")
async def apply(request: ApplyRequest) -> dict:
    host = InMemoryDocument(request.document)
    run = await run_auto_format(
        host,
        request.options,
        template_store=get_template_store(),
        audit_log=get_audit_log(),
        disabled_change_ids=request.disabled_change_ids,
    )
    result = run.result
    data = ApplyData(
        audit=result.audit,
        summary=result.audit.summary(),
        applied=result.applied,
        deferred=result.deferred,
        skipped=result.skipped,
        failed=result.failed,
        document=await host.build_model(),
    )
    return success_response(data)


@router.get("/audit")
async def list_audit(limit: Optional[int] = Query(default=None, ge=1, le=500)) -> dict:
    entries = await get_audit_log().list_entries(limit=limit)
    return success_response(AuditData(entries=entries))


@router.delete("/audit")
async def clear_audit() -> dict:
    removed = await get_audit_log().clear()
    logger.info(f"Cleared {removed} audit entries")
    return success_response({"removed": removed})
