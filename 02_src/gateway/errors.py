"""Error taxonomy for the gateway.

Every error is recovered at the turn boundary (``RunOrchestrator.process_turn``)
and turned into a short localized reply, so one user's failure never leaks
into another user's buffers, session or cached answer.
"""


class GatewayError(Exception):
    """Base class for all gateway errors."""


class ConfigurationError(GatewayError):
    """A required credential or setting is missing or invalid."""


class SessionCreationError(GatewayError):
    """The remote side failed to create a conversation thread."""


class RunCreationError(GatewayError):
    """A run could not be started, even after resolving an active-run conflict."""


class ToolArgumentParseError(GatewayError):
    """Tool-call arguments could not be decoded into an object."""


class PollTimeoutError(GatewayError):
    """The poll budget ran out before the run completed."""

    def __init__(self, run_id: str, attempts: int, last_status: str):
        self.run_id = run_id
        self.attempts = attempts
        self.last_status = last_status
        super().__init__(
            f"Run {run_id} still {last_status} after {attempts} polls"
        )


class UpstreamReplyError(GatewayError):
    """The assistant reply is empty, too short, or reads as a failure."""


class AssistantAPIError(GatewayError):
    """Non-2xx response from the assistant API."""

    def __init__(self, status_code: int, message: str, error_type: str = ""):
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        super().__init__(f"Assistant API error {status_code} ({error_type}): {message}")


class ImageUnavailableError(GatewayError):
    """An image could not be fetched or exceeds the size limit."""


class ReplyDeliveryError(GatewayError):
    """The messaging platform rejected a reply."""
