"""Interactive incident intake: guided chat, then report submission."""

import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import TextIO

import httpx
from pydantic import ValidationError

from safereport.configs.system import IntakeConfig
from safereport.core.completion import (
    CompletionError,
    CompletionService,
    ConfigurationError,
)
from safereport.core.incidents import INCIDENT_TYPES
from safereport.core.intake.controller import TurnController
from safereport.core.intake.errors import IntakeValidationError
from safereport.core.intake.handoff import IncidentDraft, draft_from_session
from safereport.core.intake.models import ConversationSession

from .client import APIError, SafeReportClient
from .config import CLIConfig

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit", "q")
SUMMARY_COMMAND = "/summary"


class IntakeCLI:
    """Owns one ``ConversationSession`` for the lifetime of the program."""

    def __init__(
        self,
        config: CLIConfig,
        api: SafeReportClient,
        input_stream: TextIO = sys.stdin,
        output_stream: TextIO = sys.stdout,
        service: CompletionService | None = None,
    ):
        self.config = config
        self.api = api
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.controller = TurnController.from_config(
            service or api.completion_service(),
            IntakeConfig(
                max_turns=config.max_turns,
                request_timeout=timedelta(seconds=config.timeout),
            ),
        )
        self.session = ConversationSession()

    async def run(self) -> str | None:
        """Run the chat, then the submission form.

        Returns the created incident id, or ``None`` when nothing was
        submitted.
        """
        try:
            self._print_welcome()
            if not await self._chat():
                return None
            return await self._handoff(draft_from_session(self.session))
        except EOFError:
            self._print("\nGoodbye!\n")
            return None
        finally:
            await self.api.close()

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def _chat(self) -> bool:
        """Return ``True`` once the session has a summary."""
        while not self.session.is_completed:
            text = self._get_user_input("> ")
            command = text.strip().lower()
            if command in EXIT_COMMANDS:
                self._print("Goodbye!\n")
                return False

            try:
                if command == SUMMARY_COMMAND:
                    result = await self.controller.request_summary(self.session)
                else:
                    result = await self.controller.submit_turn(self.session, text)
            except IntakeValidationError as e:
                self._print(f"! {e.message}\n")
                continue
            except ConfigurationError as e:
                self._print(
                    f"\nThe assistant is unavailable: {e.message}\n"
                    "Please use the report form directly.\n"
                )
                return False
            except CompletionError as e:
                logger.debug("Turn failed with %s", e.code)
                self._print(
                    f"\nCould not get a reply ({e.code}). "
                    "Your last message was not recorded, please send it again.\n\n"
                )
                continue

            if result.reply is not None and not result.completed:
                name = self.config.assistant_name
                self._print(f"\n{name}: {result.reply.content}\n\n")

        self._print(f"\nSummary of your report:\n\n{self.session.summary}\n\n")
        return True

    # ------------------------------------------------------------------
    # Submission form
    # ------------------------------------------------------------------

    async def _handoff(self, draft: IncidentDraft) -> str | None:
        """Fill and submit the draft until it is accepted or given up.

        A failed submission never drops the summary: the reporter can edit
        and resend, and on giving up the description is printed again.
        """
        while self._fill_draft(draft) is not None:
            incident_id = await self._submit(draft)
            if incident_id is not None:
                return incident_id
            if not self._confirm("Edit and try again? [y/N]: "):
                self._print(
                    "Your report was not submitted. Keep this text to report "
                    f"it later:\n\n{draft.description}\n\n"
                )
                return None
        self._print("Report discarded.\n")
        return None

    def _fill_draft(self, draft: IncidentDraft) -> IncidentDraft | None:
        self._print("Incident type:\n")
        for number, name in enumerate(INCIDENT_TYPES, start=1):
            self._print(f"  {number}. {name}\n")
        draft.type = self._choose_type()

        replacement = self._get_user_input(
            "Press Enter to keep the current description, "
            "or type a new description: "
        ).strip()
        if replacement:
            draft.description = replacement

        draft.location = self._get_user_input("Location (optional): ").strip() or None
        evidence = self._get_user_input("Evidence file path (optional): ").strip()
        draft.evidence_reference = evidence or None
        draft.is_anonymous = self._confirm("Report anonymously? [y/N]: ")

        if not self._confirm("Submit this report? [y/N]: "):
            return None
        return draft

    def _choose_type(self) -> str:
        while True:
            choice = self._get_user_input("Choose a number: ").strip()
            if choice.isdigit() and 1 <= int(choice) <= len(INCIDENT_TYPES):
                return INCIDENT_TYPES[int(choice) - 1]
            self._print(f"Enter a number between 1 and {len(INCIDENT_TYPES)}.\n")

    async def _submit(self, draft: IncidentDraft) -> str | None:
        try:
            if draft.evidence_reference:
                draft.evidence_reference = await self.api.upload_evidence(
                    Path(draft.evidence_reference).expanduser()
                )
            incident = await self.api.submit_incident(draft)
        except OSError as e:
            self._print(f"Could not read the evidence file: {e}\n")
            return None
        except ValidationError as e:
            self._print(f"The report is not valid: {_describe(e)}\n")
            return None
        except APIError as e:
            self._print(f"Submission failed: {e.message}\n")
            return None
        except httpx.HTTPError as e:
            self._print(f"Could not reach the server: {e}\n")
            return None

        self._print(f"Report submitted. Reference: {incident['id']}\n")
        return incident["id"]

    # ------------------------------------------------------------------
    # I/O helpers
    # ------------------------------------------------------------------

    def _confirm(self, prompt: str) -> bool:
        return self._get_user_input(prompt).strip().lower() in ("y", "yes")

    def _get_user_input(self, prompt: str) -> str:
        """Get user input from the input stream."""
        self._print(prompt)
        line = self.input_stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\n\r")

    def _print_welcome(self) -> None:
        self._print("SafeReport - guided incident report\n")
        self._print(f"Connected to: {self.config.base_url}\n")
        self._print(
            f"Type '{SUMMARY_COMMAND}' to finish early, 'exit' or 'quit' to leave.\n\n"
        )
        self._print(
            f"{self.config.assistant_name}: Hi, I'm {self.config.assistant_name}, "
            "your safety officer. Please tell me about the incident.\n\n"
        )

    def _print(self, text: str) -> None:
        """Print text to output stream."""
        self.output_stream.write(text)
        self.output_stream.flush()


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )


async def main(config: CLIConfig, debug: bool = False) -> None:
    """Main entry point for the CLI."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    cli = IntakeCLI(config, SafeReportClient(config))
    await cli.run()
