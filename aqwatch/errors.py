"""Error taxonomy shared by the fetcher and the webhook dispatcher."""

from typing import Optional


class WatcherError(Exception):
    """Base class for all watcher failures."""


class DecodeError(WatcherError):
    """Upstream body is not JSON or has no recognizable station array."""


class TransportError(WatcherError):
    """Request could not be sent or no response was received (incl. timeouts)."""


class HTTPStatusError(WatcherError):
    """Server answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str, message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"http status {status_code}: {body}")


class ApplicationError(WatcherError):
    """Webhook answered 2xx but reported a non-zero errcode in its body."""

    def __init__(self, errcode, body: str, message: Optional[str] = None):
        self.errcode = errcode
        self.body = body
        super().__init__(message or f"errcode={errcode}, body={body}")
