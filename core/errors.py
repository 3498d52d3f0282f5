# core/errors.py


class MojangError(Exception):
    """Base class for failures talking to the Mojang APIs."""


class InvalidUsername(MojangError, ValueError):
    def __init__(self, username):
        super().__init__(f"Invalid username provided: {username!r}")
        self.username = username


class UpstreamError(MojangError):
    def __init__(self, message: str, *, status: int | None = None, error_type: str = "Unknown"):
        super().__init__(message)
        self.status = status
        self.error_type = error_type


class UpstreamTimeout(UpstreamError):
    pass


class UpstreamUnavailable(UpstreamError):
    pass
