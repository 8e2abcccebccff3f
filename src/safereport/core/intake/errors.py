"""Local rejections of a submission. These never reach the completion service."""

REASON_EMPTY_INPUT = "empty_input"
REASON_COMPLETED = "completed"
REASON_BUSY = "busy"
REASON_EMPTY_TRANSCRIPT = "empty_transcript"


class IntakeValidationError(ValueError):
    """A submission was rejected before any state change."""

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason
