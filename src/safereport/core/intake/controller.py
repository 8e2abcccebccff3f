"""Turn controller: the bounded question/answer loop of the intake chat.

A submission is either fully recorded (user message + assistant reply)
or not recorded at all.  Before the completion call the controller takes
a checkpoint; any failure, timeout or cancellation restores it, so the
reporter can resubmit the same text.

Termination: the session completes when ``turn_count`` reaches
``max_turns`` or when ``request_summary`` is called.  The summary is
requested in a second, ``summary``-mode call and stored on the session;
it is not appended to the transcript.
"""

import asyncio
import logging
from datetime import timedelta
from typing import NoReturn, Sequence

from safereport.configs.prompts import SUMMARY_REQUEST_MESSAGE
from safereport.configs.system import IntakeConfig
from safereport.core.completion.errors import (
    CompletionError,
    MalformedResponseError,
    TransportError,
)
from safereport.core.completion.models import CompletionMode, CompletionRequest
from safereport.core.completion.service import CompletionService
from safereport.core.metrics import INTAKE_SUMMARIES_TOTAL, INTAKE_TURNS_TOTAL
from safereport.infra.telemetry import (
    ATTR_INTAKE_OUTCOME,
    ATTR_INTAKE_SESSION_ID,
    ATTR_INTAKE_TURN_COUNT,
    SPAN_INTAKE_SUMMARY,
    SPAN_INTAKE_TURN,
    tracer,
)

from .errors import (
    REASON_BUSY,
    REASON_COMPLETED,
    REASON_EMPTY_INPUT,
    REASON_EMPTY_TRANSCRIPT,
    IntakeValidationError,
)
from .handoff import clean_summary
from .models import (
    ROLE_USER,
    ChatMessage,
    Checkpoint,
    ConversationSession,
    SessionStatus,
    TurnResult,
)

logger = logging.getLogger(__name__)

OUTCOME_CONTINUED = "continued"
OUTCOME_COMPLETED = "completed"
OUTCOME_REJECTED = "rejected"
OUTCOME_FAILED = "failed"

TRIGGER_TURN_LIMIT = "turn_limit"
TRIGGER_EXPLICIT = "explicit"


class TurnController:
    """Drives submissions against one ``CompletionService``.

    The controller holds no per-session state; every operation takes the
    session it acts on.
    """

    def __init__(
        self,
        service: CompletionService,
        *,
        max_turns: int = 3,
        summary_request: str = SUMMARY_REQUEST_MESSAGE,
        request_timeout: timedelta | None = timedelta(seconds=90),
    ) -> None:
        if max_turns < 1:
            raise ValueError(f"max_turns must be >= 1, got {max_turns}")
        self._service = service
        self._max_turns = max_turns
        self._summary_request = summary_request
        self._timeout = request_timeout.total_seconds() if request_timeout else None

    @classmethod
    def from_config(
        cls, service: CompletionService, config: IntakeConfig
    ) -> "TurnController":
        return cls(
            service,
            max_turns=config.max_turns,
            summary_request=config.summary_request,
            request_timeout=config.request_timeout,
        )

    @property
    def max_turns(self) -> int:
        return self._max_turns

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def submit_turn(
        self, session: ConversationSession, user_text: str
    ) -> TurnResult:
        """Record one user message and the assistant's next question.

        Raises ``IntakeValidationError`` without touching the session when
        the text is blank, the session is completed or a call is in
        flight.  Raises a ``CompletionError`` after rolling back when the
        completion round-trip fails.
        """
        text = (user_text or "").strip()
        if not text:
            self._reject(session, "Message must not be empty", REASON_EMPTY_INPUT)
        self._ensure_accepting(session)

        with tracer.start_as_current_span(SPAN_INTAKE_TURN) as span:
            span.set_attribute(ATTR_INTAKE_SESSION_ID, session.session_id)
            checkpoint = session._checkpoint()
            history = session.transcript
            session._append(ChatMessage(role=ROLE_USER, content=text))
            session.status = SessionStatus.AWAITING_RESPONSE

            try:
                reply = await self._call(CompletionMode.QUESTION, history, text)
                session._append(reply)
                session.turn_count += 1

                summary = None
                if session.turn_count >= self._max_turns:
                    summary = await self._summarise(session)
            except (CompletionError, asyncio.CancelledError) as exc:
                self._fail(session, checkpoint, exc)
                raise
            except Exception as exc:
                self._fail(session, checkpoint, exc)
                raise TransportError(f"Completion failed unexpectedly: {exc}") from exc

            if summary is not None:
                self._complete(session, summary, TRIGGER_TURN_LIMIT)
                outcome = OUTCOME_COMPLETED
            else:
                session.status = SessionStatus.ACTIVE
                outcome = OUTCOME_CONTINUED

            span.set_attribute(ATTR_INTAKE_TURN_COUNT, session.turn_count)
            span.set_attribute(ATTR_INTAKE_OUTCOME, outcome)
            INTAKE_TURNS_TOTAL.labels(outcome=outcome).inc()
            logger.info(
                "Intake turn %d/%d %s (session=%s)",
                session.turn_count,
                self._max_turns,
                outcome,
                session.session_id,
            )
            return TurnResult(
                reply=reply,
                turn_count=session.turn_count,
                status=session.status,
                summary=session.summary,
            )

    async def request_summary(self, session: ConversationSession) -> TurnResult:
        """Finish the conversation early with a summary of what was said."""
        self._ensure_accepting(session)
        if not session.visible_transcript():
            self._reject(
                session, "Nothing to summarise yet", REASON_EMPTY_TRANSCRIPT
            )

        with tracer.start_as_current_span(SPAN_INTAKE_SUMMARY) as span:
            span.set_attribute(ATTR_INTAKE_SESSION_ID, session.session_id)
            checkpoint = session._checkpoint()
            session.status = SessionStatus.AWAITING_RESPONSE
            try:
                summary = await self._summarise(session)
            except (CompletionError, asyncio.CancelledError) as exc:
                self._fail(session, checkpoint, exc)
                raise
            except Exception as exc:
                self._fail(session, checkpoint, exc)
                raise TransportError(f"Completion failed unexpectedly: {exc}") from exc

            self._complete(session, summary, TRIGGER_EXPLICIT)
            span.set_attribute(ATTR_INTAKE_OUTCOME, OUTCOME_COMPLETED)
            return TurnResult(
                reply=None,
                turn_count=session.turn_count,
                status=session.status,
                summary=summary,
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_accepting(self, session: ConversationSession) -> None:
        if session.is_completed:
            self._reject(
                session, "This report conversation is finished", REASON_COMPLETED
            )
        if session.is_busy:
            self._reject(
                session, "Please wait for the current reply", REASON_BUSY
            )

    @staticmethod
    def _reject(session: ConversationSession, message: str, reason: str) -> NoReturn:
        INTAKE_TURNS_TOTAL.labels(outcome=OUTCOME_REJECTED).inc()
        logger.debug(
            "Intake submission rejected (session=%s, reason=%s)",
            session.session_id,
            reason,
        )
        raise IntakeValidationError(message, reason=reason)

    async def _call(
        self,
        mode: CompletionMode,
        history: Sequence[ChatMessage],
        message: str,
    ) -> ChatMessage:
        request = CompletionRequest.build(mode, history, message)
        try:
            async with asyncio.timeout(self._timeout):
                return await self._service.complete(request)
        except TimeoutError as exc:
            raise TransportError(
                f"Completion did not answer within {self._timeout:g}s"
            ) from exc

    async def _summarise(self, session: ConversationSession) -> str:
        reply = await self._call(
            CompletionMode.SUMMARY, session.transcript, self._summary_request
        )
        summary = clean_summary(reply.content)
        if not summary:
            raise MalformedResponseError("Summary was empty after cleanup")
        return summary

    @staticmethod
    def _complete(session: ConversationSession, summary: str, trigger: str) -> None:
        session.summary = summary
        session.status = SessionStatus.COMPLETED
        INTAKE_SUMMARIES_TOTAL.labels(trigger=trigger).inc()
        logger.info(
            "Intake completed after %d turn(s) (session=%s, trigger=%s)",
            session.turn_count,
            session.session_id,
            trigger,
        )

    @staticmethod
    def _fail(
        session: ConversationSession, checkpoint: Checkpoint, exc: BaseException
    ) -> None:
        session._rollback(checkpoint)
        if isinstance(exc, asyncio.CancelledError):
            logger.info("Intake turn cancelled (session=%s)", session.session_id)
            return
        INTAKE_TURNS_TOTAL.labels(outcome=OUTCOME_FAILED).inc()
        logger.warning(
            "Intake turn rolled back (session=%s): %s",
            session.session_id,
            exc,
        )
