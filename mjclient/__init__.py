"""
mjclient - Midjourney client over the Discord Gateway.
"""

__version__ = "0.1.0"
__logo__ = "🎨"

from mjclient.errors import (
    ConfigError,
    DecodeError,
    InvalidResultError,
    MidjourneyError,
    SubmissionRejected,
    TransportError,
)
from mjclient.config.schema import MidjourneyConfig
from mjclient.midjourney.api import Midjourney
from mjclient.midjourney.messages import Finish, OutcomeEvent, Progress

__all__ = [
    "ConfigError",
    "DecodeError",
    "Finish",
    "InvalidResultError",
    "Midjourney",
    "MidjourneyConfig",
    "MidjourneyError",
    "OutcomeEvent",
    "Progress",
    "SubmissionRejected",
    "TransportError",
]
