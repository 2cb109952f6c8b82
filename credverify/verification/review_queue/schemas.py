"""
Pydantic schemas for the manual review queue endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from credverify.verification.schemas import OverallVerificationStatus


class ApproveReviewRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1, description="Reviewer performing the action")
    notes: Optional[str] = Field(None, description="Optional resolution notes")


class RejectReviewRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1, description="Reviewer performing the action")
    # Validated in the service so an empty reason is a 400 with no state change
    reason: Optional[str] = Field(None, description="Why the credential is rejected")


class AssignReviewRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1)


class EscalateReviewRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = None


class ManualReviewItemResponse(BaseModel):
    """Reviewer-facing view of a queue item, including reviewer context."""

    id: str
    submission_id: str
    verification_result_id: str
    credential_key: str
    review_type: str
    priority: str
    status: str
    reason: str
    review_data: Dict[str, Any] = {}
    sla_deadline: datetime
    sla_remaining: Optional[str] = None
    assigned_to: Optional[str] = None
    assigned_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("review_type", "priority", "status", mode="before")
    @classmethod
    def _enum_value(cls, value):
        return value.value if isinstance(value, Enum) else value


class ManualReviewListResponse(BaseModel):
    items: List[ManualReviewItemResponse]
    total: int


class ReviewResolutionResponse(BaseModel):
    review: ManualReviewItemResponse
    overall_status: OverallVerificationStatus
