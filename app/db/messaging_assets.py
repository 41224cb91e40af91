"""Pipeline output storage: messaging assets and their per-voice variants."""

from typing import Any
from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_generation import VoiceProfile
from app.core.schemas_scoring import ScoreResults
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def store_variant(
    job_id: UUID | str,
    asset_type: str,
    content: str,
    voice: VoiceProfile,
    scores: ScoreResults,
    passes_gates: bool,
    metadata: dict[str, Any] | None = None,
    practitioner_quotes: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """
    Insert one asset row for (job, asset_type, voice), its variant and its
    traceability record (the practitioner quotes the generation drew on).

    Returns:
        The inserted variant row
    """
    supabase = get_supabase()

    try:
        asset_response = (
            supabase.table("messaging_assets")
            .insert(
                {
                    "job_id": str(job_id),
                    "asset_type": asset_type,
                    "content": content,
                    "status": "review" if passes_gates else "draft",
                    **scores.as_columns(),
                    "metadata": {
                        "voiceId": voice.id,
                        "voiceName": voice.name,
                        "voiceSlug": voice.slug,
                        **(metadata or {}),
                    },
                }
            )
            .execute()
        )
        if not asset_response.data:
            raise ValueError("No data returned from messaging_assets insert")
        asset = asset_response.data[0]

        variant_response = (
            supabase.table("asset_variants")
            .insert(
                {
                    "asset_id": asset["id"],
                    "voice_profile_id": voice.id,
                    "variant_number": 1,
                    "content": content,
                    **scores.as_columns(),
                    "passes_gates": passes_gates,
                    "is_selected": False,
                }
            )
            .execute()
        )
        if not variant_response.data:
            raise ValueError("No data returned from asset_variants insert")

        supabase.table("asset_traceability").insert(
            {"asset_id": asset["id"], "practitioner_quotes": practitioner_quotes or []}
        ).execute()

        logger.info(
            f"Stored {asset_type} variant for voice {voice.slug or voice.id}",
            extra={"job_id": str(job_id), "asset_type": asset_type, "passes_gates": passes_gates},
        )
        return variant_response.data[0]

    except Exception as e:
        logger.error(f"Failed to store variant: {e}", extra={"job_id": str(job_id)})
        raise


def list_job_assets(job_id: UUID | str) -> list[dict[str, Any]]:
    """Assets for a job, each with a `variants` list attached."""
    supabase = get_supabase()

    try:
        assets = (
            supabase.table("messaging_assets")
            .select("*")
            .eq("job_id", str(job_id))
            .order("created_at")
            .execute()
        ).data or []
        if not assets:
            return []

        variants = (
            supabase.table("asset_variants")
            .select("*")
            .in_("asset_id", [a["id"] for a in assets])
            .execute()
        ).data or []

        by_asset: dict[str, list[dict[str, Any]]] = {}
        for variant in variants:
            by_asset.setdefault(variant["asset_id"], []).append(variant)
        for asset in assets:
            asset["variants"] = by_asset.get(asset["id"], [])
        return assets

    except Exception as e:
        logger.error(f"Failed to list assets for job {job_id}: {e}")
        raise
