"""Gateway error taxonomy.

Routers map these onto HTTP responses: routing errors are client errors,
provider failures are server errors with the cause kept in the logs.
"""


class GatewayError(Exception):
    """Base class for errors raised by the gateway services."""

    http_status: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class UnsupportedAssistantType(GatewayError):
    """Assistant identifier has no provider prefix or an unregistered one."""

    http_status = 400

    def __init__(self, assistant_id: str):
        self.assistant_id = assistant_id
        super().__init__(f"Unsupported assistant type: {assistant_id!r}")


class ProviderCallFailed(GatewayError):
    """A provider call failed at the transport level or returned non-2xx."""

    def __init__(self, provider: str, cause: BaseException):
        self.provider = provider
        self.cause = cause
        super().__init__(f"Provider '{provider}' call failed: {cause}")


class StreamProtocolError(GatewayError):
    """A streamed payload could not be decoded or processed."""


class HistoryLookupFailed(GatewayError):
    """Conversation history could not be fetched before a chat call."""

    def __init__(self, conversation_id: str, cause: BaseException):
        self.conversation_id = conversation_id
        self.cause = cause
        super().__init__(f"History lookup failed for {conversation_id}: {cause}")
