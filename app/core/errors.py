"""Domain exceptions for the Messaging Engine."""


class MessagingEngineError(Exception):
    """Base class for errors raised by the engine."""


class NotFoundError(MessagingEngineError):
    """A referenced record (job, session, voice profile, version) does not exist."""


class InvalidJobTransition(MessagingEngineError):
    """Raised when a job update would leave a terminal state."""

    def __init__(self, job_id: str, target_status: str):
        self.job_id = job_id
        self.target_status = target_status
        super().__init__(f"Job {job_id} is terminal; refusing transition to '{target_status}'")


class VersionConflictError(MessagingEngineError):
    """Another writer took the version number this write computed."""


class ActionError(MessagingEngineError):
    """A user-invoked workspace action cannot produce a meaningful result."""


class NoActiveVersionError(ActionError):
    def __init__(self, session_id: str, asset_type: str):
        super().__init__(f"No active version for session {session_id} / {asset_type}")


class InsufficientEvidenceError(ActionError):
    """Research came back empty where the action depends on it."""


class KeywordExtractionError(ActionError):
    """AI keyword extraction returned no usable keywords."""
