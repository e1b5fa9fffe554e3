"""
Error taxonomy for the Midjourney client.

Scope rules:
    - DecodeError is single-frame scope and never tears down a session
    - TransportError / SubmissionRejected terminate one command only
    - ConfigError is raised before any connection is attempted
"""

from __future__ import annotations


class MidjourneyError(Exception):
    """Base class for every error raised by mjclient."""


class ConfigError(MidjourneyError):
    """Required configuration is missing or invalid."""


class TransportError(MidjourneyError):
    """Gateway or HTTP transport failure."""


class SubmissionRejected(MidjourneyError):
    """
    Command submission answered with a non-success status.

    The interactions endpoint replies 204 on success, anything else
    ends up here with the status attached.
    """

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Interaction rejected with status {status_code}")


class DecodeError(MidjourneyError):
    """Inbound gateway frame could not be decoded."""


class InvalidResultError(MidjourneyError):
    """A completion event matched a command but has no image attached."""
