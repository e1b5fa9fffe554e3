"""
Correlation of outbound commands with inbound gateway events.
"""

from mjclient.correlation.registry import CorrelationRegistry
from mjclient.correlation.resolver import extract_prompt, resolve_token
from mjclient.correlation.stream import RequestStream

__all__ = ["CorrelationRegistry", "RequestStream", "extract_prompt", "resolve_token"]
