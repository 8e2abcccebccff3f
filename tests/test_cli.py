"""Tests for the interactive intake CLI."""

import io
import json

import httpx
import pytest

from cli.client import SafeReportClient
from cli.config import CLIConfig
from cli.intake_cli import IntakeCLI
from safereport.core.completion import ConfigurationError, TransportError
from helpers import REPORTER_ID, SUMMARY_TEXT, ScriptedCompletionService


class FakeServer:
    """Records requests to the incident and evidence endpoints."""

    def __init__(self, incident_status: int = 201, unreachable: int = 0):
        self.incidents: list[dict] = []
        self.uploads: list[httpx.Request] = []
        self.incident_status = incident_status
        # Number of incident submissions that fail to connect.
        self.unreachable = unreachable

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/evidence":
            self.uploads.append(request)
            return httpx.Response(
                201,
                json={
                    "reference": f"{REPORTER_ID}/evid_test.png",
                    "url": f"/evidence/{REPORTER_ID}/evid_test.png",
                },
            )
        if request.url.path == "/api/v1/incidents":
            if self.unreachable:
                self.unreachable -= 1
                raise httpx.ConnectError("Connection refused", request=request)
            if self.incident_status != 201:
                return httpx.Response(
                    self.incident_status,
                    json={
                        "error": "Request validation failed",
                        "code": "VALIDATION_ERROR",
                    },
                )
            payload = json.loads(request.content)
            self.incidents.append(payload)
            return httpx.Response(201, json={"id": "inc_test123", **payload})
        return httpx.Response(404, json={"error": "Not Found", "code": "NOT_FOUND"})


def _cli(lines: list[str], service, server: FakeServer | None = None):
    config = CLIConfig(user_id=REPORTER_ID, max_turns=3)
    server = server or FakeServer()
    api = SafeReportClient(config, transport=httpx.MockTransport(server.handler))
    output = io.StringIO()
    cli = IntakeCLI(
        config,
        api,
        input_stream=io.StringIO("".join(f"{line}\n" for line in lines)),
        output_stream=output,
        service=service,
    )
    return cli, output, server


FORM = ["2", "", "51.5074,-0.1278|Station", "", "n", "y"]


class TestIntakeCLI:
    """End-to-end runs of the chat and the submission form."""

    @pytest.mark.asyncio
    async def test_three_turns_then_submit(self):
        service = ScriptedCompletionService("When?", "Where?", "Anything else?")
        cli, output, server = _cli(
            ["I was followed", "Yesterday at 9pm", "Near the station", *FORM], service
        )

        incident_id = await cli.run()

        assert incident_id == "inc_test123"
        text = output.getvalue()
        assert "Hi, I'm Rachael, your safety officer" in text
        assert "Rachael: When?" in text
        assert "Rachael: Where?" in text
        assert SUMMARY_TEXT in text
        assert "Report submitted. Reference: inc_test123" in text
        assert server.incidents == [
            {
                "type": "Stalking",
                "description": SUMMARY_TEXT,
                "location": "51.5074,-0.1278|Station",
                "evidence_reference": None,
                "is_anonymous": False,
            }
        ]

    @pytest.mark.asyncio
    async def test_summary_command_finishes_early(self):
        service = ScriptedCompletionService("When?")
        cli, output, server = _cli(
            ["I was followed", "/summary", "5", "My own words", "", "", "y", "y"],
            service,
        )

        incident_id = await cli.run()

        assert incident_id == "inc_test123"
        assert len(service.requests) == 2
        assert service.requests[-1].is_summary_request
        assert server.incidents[0]["description"] == "My own words"
        assert server.incidents[0]["type"] == "Other"
        assert server.incidents[0]["is_anonymous"] is True

    @pytest.mark.asyncio
    async def test_failed_turn_asks_to_resend(self):
        service = ScriptedCompletionService(TransportError("timeout"), "When?")
        cli, output, _ = _cli(["I was followed", "I was followed", "exit"], service)

        assert await cli.run() is None

        text = output.getvalue()
        assert "Could not get a reply (TRANSPORT_ERROR)" in text
        assert "Rachael: When?" in text
        assert [m.content for m in cli.session.transcript] == ["I was followed", "When?"]

    @pytest.mark.asyncio
    async def test_configuration_error_ends_chat(self):
        service = ScriptedCompletionService(ConfigurationError("no key"))
        cli, output, server = _cli(["hello"], service)

        assert await cli.run() is None

        assert "The assistant is unavailable" in output.getvalue()
        assert server.incidents == []

    @pytest.mark.asyncio
    async def test_blank_line_is_not_sent(self):
        service = ScriptedCompletionService()
        cli, output, _ = _cli(["   ", "quit"], service)

        await cli.run()

        assert "! Message must not be empty" in output.getvalue()
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_end_of_input_says_goodbye(self):
        cli, output, _ = _cli([], ScriptedCompletionService())

        assert await cli.run() is None
        assert "Goodbye!" in output.getvalue()

    @pytest.mark.asyncio
    async def test_evidence_is_uploaded_before_submission(self, tmp_path):
        photo = tmp_path / "scene.png"
        photo.write_bytes(b"\x89PNG fake")
        service = ScriptedCompletionService()
        cli, _, server = _cli(
            ["a", "/summary", "1", "", "", str(photo), "n", "y"], service
        )

        await cli.run()

        assert len(server.uploads) == 1
        assert b"scene.png" in server.uploads[0].content
        reference = server.incidents[0]["evidence_reference"]
        assert reference == f"{REPORTER_ID}/evid_test.png"

    @pytest.mark.asyncio
    async def test_missing_evidence_file_is_reported(self, tmp_path):
        service = ScriptedCompletionService()
        missing = tmp_path / "nope.png"
        cli, output, server = _cli(
            ["a", "/summary", "1", "", "", str(missing), "n", "y"], service
        )

        assert await cli.run() is None
        assert "Could not read the evidence file" in output.getvalue()
        assert server.incidents == []

    @pytest.mark.asyncio
    async def test_rejected_submission_is_reported(self):
        server = FakeServer(incident_status=422)
        service = ScriptedCompletionService()
        cli, output, _ = _cli(["a", "/summary", *FORM], service, server)

        assert await cli.run() is None
        assert "Submission failed: Request validation failed" in output.getvalue()

    @pytest.mark.asyncio
    async def test_unreachable_server_keeps_draft_for_retry(self):
        server = FakeServer(unreachable=1)
        cli, output, _ = _cli(
            ["a", "/summary", *FORM, "y", *FORM], ScriptedCompletionService(), server
        )

        assert await cli.run() == "inc_test123"

        text = output.getvalue()
        assert "Could not reach the server: Connection refused" in text
        assert "Edit and try again?" in text
        assert len(server.incidents) == 1
        assert server.incidents[0]["description"] == SUMMARY_TEXT

    @pytest.mark.asyncio
    async def test_invalid_location_can_be_corrected(self):
        too_long = "x" * 600
        cli, output, server = _cli(
            ["a", "/summary", "1", "", too_long, "", "n", "y", "y", *FORM],
            ScriptedCompletionService(),
        )

        assert await cli.run() == "inc_test123"

        assert "The report is not valid: location:" in output.getvalue()
        assert server.incidents[0]["location"] == "51.5074,-0.1278|Station"
        assert server.incidents[0]["type"] == "Stalking"

    @pytest.mark.asyncio
    async def test_giving_up_after_failure_prints_the_summary(self):
        server = FakeServer(unreachable=1)
        cli, output, _ = _cli(
            ["a", "/summary", *FORM, "n"], ScriptedCompletionService(), server
        )

        assert await cli.run() is None

        text = output.getvalue()
        after_failure = text.split("Your report was not submitted.")[1]
        assert SUMMARY_TEXT in after_failure
        assert "Goodbye!" not in text

    @pytest.mark.asyncio
    async def test_declined_submission_is_discarded(self):
        cli, output, server = _cli(
            ["a", "/summary", "1", "", "", "", "n", "n"], ScriptedCompletionService()
        )

        assert await cli.run() is None
        assert "Report discarded." in output.getvalue()
        assert server.incidents == []


class TestCLIConfig:
    def test_identity_header_only_when_user_set(self):
        assert CLIConfig().headers == {}
        assert CLIConfig(user_id="u1").headers == {"X-User-Id": "u1"}
        assert CLIConfig(host="h", port=1).base_url == "http://h:1"
