class ChatError(Exception):

    code = "chat_error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class ValidationError(ChatError, ValueError):
    """Request rejected before anything was stored."""

    code = "validation_error"


class InvalidRecipient(ValidationError):
    """Cannot send a message to yourself."""

    code = "invalid_recipient"


class EmptyMessage(ValidationError):
    """Message content cannot be empty."""

    code = "empty_message"


class RecipientNotAllowed(ValidationError):
    """Recipient is not in the sender's contacts."""

    code = "recipient_not_allowed"


class MalformedPayload(ValidationError):
    """Malformed message payload."""

    code = "malformed_payload"


class StoreUnavailable(ChatError):
    """Message store is unavailable."""

    code = "store_unavailable"


class ChannelPushFailure(ChatError):
    """Realtime push to a channel failed."""

    code = "channel_push_failure"


class PresenceWriteFailure(ChatError):
    """Could not record a presence transition."""

    code = "presence_write_failure"
