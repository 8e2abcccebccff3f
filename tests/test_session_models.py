import pytest
from pydantic import ValidationError

from safereport.core.intake.handoff import clean_summary, draft_from_session
from safereport.core.intake.models import ChatMessage, ConversationSession, SessionStatus


class TestConversationSession:
    def test_new_session(self):
        session = ConversationSession()

        assert session.session_id.startswith("intake_")
        assert session.transcript == ()
        assert session.turn_count == 0
        assert session.status is SessionStatus.ACTIVE
        assert session.summary is None

    def test_rollback_restores_checkpoint(self):
        session = ConversationSession()
        session._append(ChatMessage(role="user", content="a"))
        checkpoint = session._checkpoint()

        session._append(ChatMessage(role="user", content="b"))
        session._append(ChatMessage(role="assistant", content="c"))
        session.turn_count = 4
        session.status = SessionStatus.AWAITING_RESPONSE
        session._rollback(checkpoint)

        assert [m.content for m in session.transcript] == ["a"]
        assert session.turn_count == 0
        assert session.status is SessionStatus.ACTIVE

    def test_visible_transcript_hides_system_messages(self):
        session = ConversationSession()
        session._append(ChatMessage(role="system", content="prompt"))
        session._append(ChatMessage(role="user", content="hi"))

        assert [m.role for m in session.visible_transcript()] == ["user"]

    def test_transcript_view_is_read_only(self):
        session = ConversationSession()
        session._append(ChatMessage(role="user", content="hi"))

        with pytest.raises(ValidationError):
            session.transcript[0].content = "changed"
        assert isinstance(session.transcript, tuple)

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValidationError):
            ChatMessage(role="moderator", content="x")


class TestHandoff:
    @pytest.mark.parametrize(
        ("raw", "cleaned"),
        [
            ("Assistant: Incident Report: x", "Incident Report: x"),
            ("**User:** yes\nsystem: no", "yes\nno"),
            (
                "Incident Report: x\n\n\n\nAuthenticity Report: y",
                "Incident Report: x\n\nAuthenticity Report: y",
            ),
            ("  Authenticity Percentage: 80%  ", "Authenticity Percentage: 80%"),
        ],
    )
    def test_clean_summary(self, raw, cleaned):
        assert clean_summary(raw) == cleaned

    def test_draft_requires_completed_session(self):
        with pytest.raises(ValueError):
            draft_from_session(ConversationSession())

    def test_draft_carries_summary(self):
        session = ConversationSession(status=SessionStatus.COMPLETED, summary="Report")

        draft = draft_from_session(session)

        assert draft.description == "Report"
        assert draft.type is None
        assert not draft.is_anonymous
