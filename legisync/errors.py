"""
Error taxonomy for the LegiScan client.

TransportError and ProtocolError always reach the caller. CacheIOError is
raised inside the cache store and recovered there. ArchiveError aborts a bulk
load. ConfigurationError is raised while wiring a client together.
"""


class LegiscanError(Exception):
    """Base class for every error raised by legisync."""


class TransportError(LegiscanError):
    """HTTP status outside 2xx, or a network-level failure (timeout, DNS, TLS)."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProtocolError(LegiscanError):
    """The API answered over HTTP successfully but the envelope reports a failure."""

    def __init__(self, message: str, alert_type: str | None = None):
        super().__init__(message)
        self.alert_type = alert_type


class CacheIOError(LegiscanError):
    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class ArchiveError(LegiscanError):
    """A dataset archive could not be expanded, or one of its files could not be read."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ConfigurationError(LegiscanError):
    pass
