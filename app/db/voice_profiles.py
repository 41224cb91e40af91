"""Voice profile database operations."""

from uuid import UUID

from app.core.logging import get_logger
from app.core.schemas_generation import VoiceProfile
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_voice_profile(voice_id: UUID | str) -> VoiceProfile | None:
    """Get a voice profile by ID, or None if not found."""
    supabase = get_supabase()

    try:
        response = supabase.table("voice_profiles").select("*").eq("id", str(voice_id)).execute()
        if not response.data:
            logger.warning(f"Voice profile {voice_id} not found")
            return None
        return VoiceProfile.from_row(response.data[0])

    except Exception as e:
        logger.error(f"Failed to get voice profile {voice_id}: {e}")
        raise


def get_voice_profiles(voice_ids: list[str]) -> list[VoiceProfile]:
    """
    Load voice profiles in the requested order.

    Missing IDs are skipped with a warning.
    """
    if not voice_ids:
        return []
    supabase = get_supabase()

    try:
        response = (
            supabase.table("voice_profiles").select("*").in_("id", [str(v) for v in voice_ids]).execute()
        )
        by_id = {str(row["id"]): VoiceProfile.from_row(row) for row in response.data or []}

        profiles = []
        for voice_id in voice_ids:
            profile = by_id.get(str(voice_id))
            if profile is None:
                logger.warning(f"Voice profile {voice_id} not found, skipping")
                continue
            profiles.append(profile)
        return profiles

    except Exception as e:
        logger.error(f"Failed to load voice profiles: {e}")
        raise
