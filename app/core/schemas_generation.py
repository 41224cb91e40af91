"""Pydantic schemas for generation jobs, voice profiles and the generate API."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.schemas_scoring import ScoringThresholds


class PipelineName(str, Enum):
    """Closed set of generation strategies."""

    STANDARD = "standard"
    SPLIT_RESEARCH = "split-research"
    OUTSIDE_IN = "outside-in"
    ADVERSARIAL = "adversarial"
    MULTI_PERSPECTIVE = "multi-perspective"
    STRAIGHT_THROUGH = "straight-through"


class AssetType(str, Enum):
    BATTLECARD = "battlecard"
    TALK_TRACK = "talk_track"
    LAUNCH_MESSAGING = "launch_messaging"
    SOCIAL_HOOK = "social_hook"
    ONE_PAGER = "one_pager"
    EMAIL_COPY = "email_copy"
    MESSAGING_TEMPLATE = "messaging_template"
    NARRATIVE = "narrative"


class EvidenceLevel(str, Enum):
    """How much external grounding backs a generation."""

    STRONG = "strong"
    PARTIAL = "partial"
    PRODUCT_ONLY = "product-only"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Voice profiles
# =============================================================================


class VoiceProfile(BaseModel):
    """Named writing style plus its quality gate."""

    id: str
    name: str
    slug: str = ""
    description: str = ""
    voice_guide: str = ""
    scoring_thresholds: ScoringThresholds = Field(default_factory=ScoringThresholds)
    is_active: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "VoiceProfile":
        return cls(
            id=str(row["id"]),
            name=row.get("name") or "",
            slug=row.get("slug") or "",
            description=row.get("description") or "",
            voice_guide=row.get("voice_guide") or "",
            scoring_thresholds=ScoringThresholds.model_validate(
                row.get("scoring_thresholds") or {}
            ),
            is_active=row.get("is_active", True),
        )


# =============================================================================
# Job inputs (persisted on jobs.product_context)
# =============================================================================


class JobInputs(BaseModel):
    """Serialized generation parameters stored on the job row (camelCase JSON)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_docs: str = Field("", alias="productDocs")
    existing_messaging: str | None = Field(None, alias="existingMessaging")
    prompt: str | None = None
    voice_profile_ids: list[str] = Field(default_factory=list, alias="voiceProfileIds")
    asset_types: list[str] = Field(default_factory=list, alias="assetTypes")
    model: str | None = None
    pipeline: str = PipelineName.STANDARD.value
    session_id: str | None = Field(None, alias="sessionId")

    def to_context(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# API
# =============================================================================


class GenerateRequest(BaseModel):
    """Request body for POST /generate."""

    product_docs: str | None = Field(None, description="Raw product documentation")
    existing_messaging: str | None = Field(None, description="Current messaging to improve or score")
    prompt: str | None = Field(None, description="Optional focus instruction")
    voice_profile_ids: list[str] = Field(..., min_length=1)
    asset_types: list[AssetType] = Field(..., min_length=1)
    pipeline: PipelineName = PipelineName.STANDARD
    model: str | None = None

    @model_validator(mode="after")
    def _require_source_material(self) -> "GenerateRequest":
        if self.pipeline == PipelineName.STRAIGHT_THROUGH:
            if not (self.existing_messaging or "").strip():
                raise ValueError("straight-through pipeline requires existing_messaging")
        elif not (self.product_docs or "").strip():
            raise ValueError("product_docs is required for generation pipelines")
        return self

    def to_job_inputs(self, session_id: str | None = None) -> JobInputs:
        return JobInputs(
            product_docs=self.product_docs or "",
            existing_messaging=self.existing_messaging,
            prompt=self.prompt,
            voice_profile_ids=self.voice_profile_ids,
            asset_types=[a.value for a in self.asset_types],
            model=self.model,
            pipeline=self.pipeline.value,
            session_id=session_id,
        )


class GenerateResponse(BaseModel):
    job_id: str


class VariantResult(BaseModel):
    variant_id: str
    voice_profile_id: str | None = None
    voice_name: str | None = None
    content: str
    scores: dict[str, float | None] = Field(default_factory=dict)
    passes_gates: bool = False
    is_selected: bool = False


class AssetResult(BaseModel):
    asset_type: str
    variants: list[VariantResult] = Field(default_factory=list)


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    current_step: str | None = None
    progress: int = 0
    results: list[AssetResult] | None = None
    error_message: str | None = None
