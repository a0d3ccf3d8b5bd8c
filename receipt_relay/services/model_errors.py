"""Errors raised while calling the upstream language model."""


class ModelGatewayError(Exception):
    """Base class for model gateway failures."""


class ModelConfigurationError(ModelGatewayError):
    """The server-held API credential is missing or malformed."""


class UpstreamError(ModelGatewayError):
    """The model service answered with a non-success status or was unreachable."""

    def __init__(self, status_code: int | None, body: str) -> None:
        self.status_code = status_code
        self.body = body
        if status_code is None:
            super().__init__(f"Model API unreachable: {body}")
        else:
            super().__init__(f"Model API error: {status_code} - {body}")


class ResponseParseError(ModelGatewayError):
    """The model answered, but not with the expected content."""
