"""Adsora: per-user agent sessions with ad, Slack and Drive capabilities."""

__version__ = "0.1.0"

from adsora.capabilities import (
    DEFAULT_CAPABILITIES,
    CapabilityConfigurator,
    CapabilityDescriptor,
    ConfigurationReport,
)
from adsora.config import AdsoraConfig
from adsora.conversation import ChatMessage, Conversation
from adsora.errors import (
    AdsoraError,
    ConfigurationFailure,
    ProvisionFailure,
    SessionNotFound,
    SessionNotReady,
    SessionUnavailable,
    ToolCallFailure,
)
from adsora.events import EventCollector
from adsora.manager import APOLOGY_RESPONSE, SessionManager
from adsora.provisioner import RunnerProvisioner
from adsora.router import FALLBACK_RESPONSE, Intent, IntentRouter, Tool, classify
from adsora.sessions import Session, SessionStatus, SessionStore

__all__ = [
    "DEFAULT_CAPABILITIES",
    "CapabilityConfigurator",
    "CapabilityDescriptor",
    "ConfigurationReport",
    "AdsoraConfig",
    "ChatMessage",
    "Conversation",
    "AdsoraError",
    "ConfigurationFailure",
    "ProvisionFailure",
    "SessionNotFound",
    "SessionNotReady",
    "SessionUnavailable",
    "ToolCallFailure",
    "EventCollector",
    "APOLOGY_RESPONSE",
    "SessionManager",
    "RunnerProvisioner",
    "FALLBACK_RESPONSE",
    "Intent",
    "IntentRouter",
    "Tool",
    "classify",
    "Session",
    "SessionStatus",
    "SessionStore",
]
