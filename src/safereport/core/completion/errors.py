"""Failure taxonomy of the completion service.

Every failure of a completion round-trip is surfaced as exactly one of
these kinds.  ``retryable`` tells the reporting surface whether the
user may simply resubmit the same text.
"""

CODE_CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
CODE_TRANSPORT_ERROR = "TRANSPORT_ERROR"
CODE_MALFORMED_RESPONSE = "MALFORMED_RESPONSE"


class CompletionError(Exception):
    """Base class for completion failures."""

    code: str = CODE_TRANSPORT_ERROR
    retryable: bool = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CompletionError):
    """Provider credentials are absent or rejected. Fatal for the session."""

    code = CODE_CONFIGURATION_ERROR
    retryable = False


class TransportError(CompletionError):
    """Network or provider-side failure, including timeouts."""

    code = CODE_TRANSPORT_ERROR


class MalformedResponseError(CompletionError):
    """The provider answered without a usable completion."""

    code = CODE_MALFORMED_RESPONSE


_BY_CODE: dict[str, type[CompletionError]] = {
    CODE_CONFIGURATION_ERROR: ConfigurationError,
    CODE_MALFORMED_RESPONSE: MalformedResponseError,
    CODE_TRANSPORT_ERROR: TransportError,
}


def error_from_code(code: str | None, message: str) -> CompletionError:
    """Rebuild a taxonomy error from a wire ``code``; unknown codes are transport errors."""
    return _BY_CODE.get(code or "", TransportError)(message)
