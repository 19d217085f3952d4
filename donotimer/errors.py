from typing import Dict, Optional


class CountdownError(Exception):
    """Base for every error the countdown core raises on purpose."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CountdownError):
    status_code = 400

    def __init__(self, message: str,
                 field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = dict(field_errors or {})


class InvalidPayload(ValidationError):
    """Webhook body is malformed or not a donation alert."""


class Unauthorized(CountdownError):
    status_code = 401


class DuplicateEvent(CountdownError):
    # reported as a successful no-op, never returned as an HTTP error
    status_code = 200

    def __init__(self, event_id: str, state=None):
        super().__init__(f"event {event_id} already processed")
        self.event_id = event_id
        # the unmodified record the duplicate was detected against
        self.state = state


class StorageFailure(CountdownError):
    status_code = 500
