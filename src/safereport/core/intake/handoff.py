"""Intake handoff: a completed session's summary becomes a report draft.

The draft only pre-fills the submission form.  The reporter may still
edit every field before the incident is created.
"""

import re
from dataclasses import dataclass

from .models import ConversationSession

# "Assistant:", "**User:**", "[system]:" at the start of a line
_ROLE_TAG = re.compile(
    r"^[ \t>*_\[]*(?:assistant|user|system)[\]*_]*[ \t]*:[*_]*[ \t]*",
    re.IGNORECASE | re.MULTILINE,
)
_BLANK_RUN = re.compile(r"\n{3,}")


def clean_summary(text: str) -> str:
    """Strip role labels and surplus blank lines from a generated summary."""
    cleaned = _ROLE_TAG.sub("", text)
    cleaned = _BLANK_RUN.sub("\n\n", cleaned)
    return cleaned.strip()


@dataclass
class IncidentDraft:
    """Pre-filled values for the incident submission form."""

    description: str
    type: str | None = None
    location: str | None = None
    evidence_reference: str | None = None
    is_anonymous: bool = False


def draft_from_session(session: ConversationSession) -> IncidentDraft:
    """Hand the finished summary over as the draft description."""
    if not session.is_completed or session.summary is None:
        raise ValueError(
            f"Session {session.session_id} has no summary yet "
            f"(status={session.status.value})"
        )
    return IncidentDraft(description=session.summary)
