"""
Exceptions raised by approute.

Everything that might be externally visible to users is a subclass of
ApprouteException. Daemon failures keep the daemon's raw error string on
`.message` so that approute.errors can classify it later.
"""


class ApprouteException(Exception):
    """
    Base class for all exceptions thrown by approute.
    """

    def __init__(self, message=None):
        super().__init__(message)


class OptionsError(ApprouteException):
    pass


class DaemonError(ApprouteException):
    """
    The daemon rejected a request. The message is passed through verbatim,
    e.g. "PROFILE_MISSING|C:\\profile.json".
    """

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DaemonConnectionError(DaemonError):
    """
    The daemon could not be reached, or the connection broke mid-request.
    """
