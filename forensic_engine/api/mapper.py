"""
API Mapper
==========

Transforms HTTP request bodies into EvidenceEntry contracts and Reports into
response DTOs. The report payload is the canonical serialized form, so an
API response and a direct report_to_json call agree field for field.
"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..contracts.base import Error, ErrorCode, Result, Timestamp
from ..contracts.events import EvidenceEntry, Report
from ..domain.serialization import report_to_dict
from ..engine import EvidenceValidationError
from ..report import render_text


class EvidenceItemModel(BaseModel):
    """One evidence item as posted by a client."""
    document_id: str
    raw_text: str
    document_name: str = ""
    author: Optional[str] = None
    explicit_timestamp: Optional[str] = None


class AnalyzeRequest(BaseModel):
    """Body of POST /api/v1/analyze."""
    case_id: str = "case"
    evidence: List[EvidenceItemModel] = Field(default_factory=list)
    integrity_attested: Optional[bool] = None


def map_item_to_entry(index: int, item: EvidenceItemModel) -> Result:
    """Build one EvidenceEntry; contract violations come back as Error data."""
    if not item.document_id.strip():
        return Result.failure(Error(
            code=ErrorCode.INVALID_DOCUMENT_ID,
            message=f"Evidence item {index} has a blank document_id",
            timestamp=Timestamp.now().value,
        ).with_context("index", str(index)))
    try:
        entry = EvidenceEntry(
            document_id=item.document_id,
            raw_text=item.raw_text,
            document_name=item.document_name,
            author=item.author,
            explicit_timestamp=item.explicit_timestamp,
        )
    except ValueError as e:
        return Result.failure(Error(
            code=ErrorCode.MALFORMED_PAYLOAD,
            message=str(e),
            timestamp=Timestamp.now().value,
        ).with_context("index", str(index)))
    return Result.success(entry)


def map_request_to_entries(request: AnalyzeRequest) -> Tuple[EvidenceEntry, ...]:
    """Build EvidenceEntry contracts; raises EvidenceValidationError on violations."""
    results = [map_item_to_entry(i, item) for i, item in enumerate(request.evidence)]
    errors = [r.error for r in results if r.is_failure]
    if errors:
        raise EvidenceValidationError(errors)
    return tuple(r.value for r in results)


def map_report_to_dto(report: Report, include_narrative: bool = True) -> Dict[str, Any]:
    dto: Dict[str, Any] = {
        "report": report_to_dict(report),
        "summary": {
            "case_id": report.case_id,
            "rule_version": report.rule_version,
            "statements": len(report.statements),
            "contradictions": len(report.contradictions),
            "anomalies": len(report.anomalies),
            "dishonesty_score": report.dishonesty_score,
            "integrity_score": report.integrity_score,
        },
    }
    if include_narrative:
        dto["narrative"] = render_text(report)
    return dto


def map_errors_to_dto(errors: Tuple[Error, ...]) -> List[Dict[str, Any]]:
    return [
        {
            "code": error.code.name,
            "message": error.message,
            "context": dict(error.context),
        }
        for error in errors
    ]
