"""
botsmith.integrations.platform - Conversational Platform Clients
==================================================================
"""

from botsmith.integrations.platform.base import ConversationalPlatform, poll_until
from botsmith.integrations.platform.factory import create_platform
from botsmith.integrations.platform.memory import InMemoryPlatform

__all__ = ["ConversationalPlatform", "InMemoryPlatform", "create_platform", "poll_until"]
