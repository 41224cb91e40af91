"""Pydantic schemas for sessions, versions and workspace actions."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from app.core.schemas_generation import AssetType, PipelineName
from app.core.schemas_scoring import ScoreResults


class VersionSource(str, Enum):
    GENERATION = "generation"
    DESLOP = "deslop"
    REGENERATE = "regenerate"
    VOICE_CHANGE = "voice_change"
    ADVERSARIAL = "adversarial"
    COMPETITIVE_DIVE = "competitive_dive"
    COMMUNITY_CHECK = "community_check"
    MULTI_PERSPECTIVE = "multi_perspective"
    CHAT = "chat"
    EDIT = "edit"


class ActionName(str, Enum):
    """Workspace actions, keyed by their URL segment."""

    DESLOP = "deslop"
    REGENERATE = "regenerate"
    CHANGE_VOICE = "change-voice"
    ADVERSARIAL = "adversarial"
    COMPETITIVE_DIVE = "competitive-dive"
    COMMUNITY_CHECK = "community-check"
    MULTI_PERSPECTIVE = "multi-perspective"


class SessionStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Sessions
# =============================================================================


class ManualPainPoint(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = ""


class CreateSessionRequest(BaseModel):
    """Request body for POST /sessions. Creates the session and starts generation."""

    pain_point_id: str | None = None
    manual_pain_point: ManualPainPoint | None = None
    voice_profile_ids: list[str] = Field(..., min_length=1)
    asset_types: list[AssetType] = Field(..., min_length=1)
    pipeline: PipelineName = PipelineName.STANDARD
    product_docs: str | None = None
    existing_messaging: str | None = None
    additional_context: str | None = None
    model: str | None = None

    @model_validator(mode="after")
    def _require_source_material(self) -> "CreateSessionRequest":
        if self.pipeline == PipelineName.STRAIGHT_THROUGH:
            if not (self.existing_messaging or "").strip():
                raise ValueError("straight-through pipeline requires existing_messaging")
        elif not (self.product_docs or "").strip():
            raise ValueError("product_docs is required for generation pipelines")
        return self


class UpdateSessionRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    is_archived: bool | None = None


class SessionResponse(BaseModel):
    session_id: str
    job_id: str | None = None
    name: str
    status: SessionStatus


# =============================================================================
# Actions
# =============================================================================


class ActionRequest(BaseModel):
    """Request body for POST /sessions/{id}/actions/{action}."""

    asset_type: AssetType
    voice_profile_id: str | None = Field(
        None, description="Target voice; required for change-voice"
    )


class ActionResult(BaseModel):
    """What every workspace action returns.

    version is None when the action found no improvement (adversarial loop).
    previous_scores is None when the version acted on was never scored.
    """

    version: dict[str, Any] | None = None
    previous_scores: ScoreResults | None = None


class ActionJobResponse(BaseModel):
    job_id: str


class ActionStatusResponse(BaseModel):
    job_id: str
    action_name: str
    status: str
    current_step: str | None = None
    progress: int = 0
    result: dict[str, Any] | None = None
    error_message: str | None = None


# =============================================================================
# Versions
# =============================================================================


class EditVersionRequest(BaseModel):
    content: str = Field(..., min_length=1)


# =============================================================================
# Chat
# =============================================================================


class ChatRequest(BaseModel):
    """A chat turn, optionally targeting one asset type's active version."""

    message: str = Field(..., min_length=1)
    asset_type: AssetType | None = None
