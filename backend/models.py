from __future__ import annotations
from typing import Dict, List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (matches the frontend payloads)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HeuristicDefinition(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: int
    name: str
    description: str
    weight: float


class Observation(CamelModel):
    finding: str = ""
    recommendation: str = ""
    # [ymin, xmin, ymax, xmax] in normalized 0-1000 coordinates
    bounding_box: Optional[List[float]] = None
    resolved: bool = False


class HeuristicDetail(CamelModel):
    score: float = 0.0
    initial_score: float = 0.0
    observations: List[Observation] = Field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.observations)

    @property
    def resolved_count(self) -> int:
        return sum(1 for obs in self.observations if obs.resolved)


class ScreenAnalysis(CamelModel):
    heuristics: Dict[int, HeuristicDetail] = Field(default_factory=dict)
    summary: str = ""
    overall_score: float = 0.0


class AuditStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ErrorKind(str, Enum):
    # Values are the keys the UI selects its guidance text with
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
    MISSING_OR_INVALID_API_KEY = "MISSING_OR_INVALID_API_KEY"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    GENERIC = "ANALYSIS_FAILED"


class AnalysisFailure(CamelModel):
    kind: ErrorKind
    message: str = ""


def _new_image_id() -> str:
    return uuid.uuid4().hex[:8]


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


class UploadedImage(CamelModel):
    id: str = Field(default_factory=_new_image_id)
    file_name: str = ""
    mime_type: str = "image/png"
    data: bytes = Field(default=b"", exclude=True, repr=False)
    status: AuditStatus = AuditStatus.IDLE
    user_context: str = ""
    model: str = ""
    analysis: Optional[ScreenAnalysis] = None
    error: Optional[AnalysisFailure] = None
    model_used: Optional[str] = None
    credential_reselection_required: bool = False
    created_at: str = Field(default_factory=_utc_now)

    @computed_field(alias="isLoading")
    @property
    def is_loading(self) -> bool:
        return self.status == AuditStatus.LOADING

    @computed_field(alias="previewUrl")
    @property
    def preview_url(self) -> str:
        return f"/api/images/{self.id}/preview"
