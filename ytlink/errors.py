from __future__ import annotations


class YTLinkError(Exception):
    """Base class for failures that end a request with a JSON error envelope."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(YTLinkError):
    status_code = 400


class AuthError(YTLinkError):
    status_code = 401


class ResolutionError(YTLinkError):
    def __init__(self, message: str, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class NoSuitableStreamError(YTLinkError):
    pass


class TransferError(YTLinkError):
    pass


class MergeError(YTLinkError):
    pass


class PublishError(YTLinkError):
    pass
