"""Exceptions raised by the care app client."""


class CareAppError(Exception):
    """Base class for client errors."""
    pass


class APIError(CareAppError):
    """A request failed: network error or a non-2xx answer from the server.

    Attributes:
        status_code: HTTP status, or None when no response arrived
        payload: Decoded JSON error body, if any
    """

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @classmethod
    def from_response(cls, response):
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get('error') or f'{response.status_code} {response.reason}'
        return cls(message, response.status_code, payload)


class MissingCareRecipientError(CareAppError):
    """A recipient-scoped operation was attempted with no active care recipient."""

    def __init__(self, message='No care recipient selected'):
        super().__init__(message)


class DuplicateSubmissionError(CareAppError):
    """A mutation was submitted again while the previous submission is still pending."""
    pass
