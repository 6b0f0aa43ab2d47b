"""Exception hierarchy for sysinfo-server."""


class SysinfoError(Exception):
    """Base class for all sysinfo-server errors."""

    status_code: int = 500


class ProbeError(SysinfoError):
    """OS metrics could not be refreshed or read."""


class SerializationError(SysinfoError):
    """A response payload could not be encoded."""


class AuthError(SysinfoError):
    """Missing, malformed or incorrect credentials."""

    status_code = 401


class RateLimitExceeded(SysinfoError):
    """The request budget for the current window is spent."""

    status_code = 429


class ConfigError(SysinfoError):
    """Startup configuration is invalid. Fatal."""


class BindError(SysinfoError):
    """A listener could not bind its address. Fatal."""
