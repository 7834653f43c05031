from __future__ import annotations


class ScanError(Exception):
    """Base class for failures that stop a scan."""


class InvalidUrlError(ScanError, ValueError):
    pass


class ScanConnectivityError(ScanError):
    """The target host could not be reached at all.

    `kind` is one of: dns, timeout, refused, tls, network, unknown.
    `message` is user-facing and its prefix is stable (callers match on it).
    """

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class ParseError(Exception):
    pass


class RobotsParseError(ParseError):
    pass


class LlmsParseError(ParseError):
    pass
