class BradburyError(Exception):
    """Base class for errors raised by the sync and stats core."""


class ValidationError(BradburyError, ValueError):
    pass


class InvalidCategory(ValidationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"invalid_category: {value!r}")
        self.value = value


class InvalidDayKey(ValidationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"invalid_day_key: {value!r}")
        self.value = value


class InvalidYear(ValidationError):
    def __init__(self, value: object) -> None:
        super().__init__(f"invalid_year: {value!r}")
        self.value = value


class MissingField(ValidationError):
    def __init__(self, field: str) -> None:
        super().__init__(f"missing_{field}")
        self.field = field


class NotFound(BradburyError, LookupError):
    pass


class TopicNotFound(NotFound):
    def __init__(self, topic_id: str) -> None:
        super().__init__(f"topic_not_found: {topic_id}")
        self.topic_id = topic_id


class TopicItemNotFound(NotFound):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"item_not_found: {item_id}")
        self.item_id = item_id


class RemoteError(BradburyError):
    """A non-2xx answer from the server."""

    def __init__(self, message: str, status: int | None = None, data: object = None) -> None:
        super().__init__(message)
        self.status = status
        self.data = data


class SyncInProgress(BradburyError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"sync already running for user {user_id}")
        self.user_id = user_id


class ConfirmationRequired(BradburyError):
    pass


class InvalidBackup(ValidationError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid_backup: {reason}")
        self.reason = reason
