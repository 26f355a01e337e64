"""Failure taxonomy for session orchestration.

None of these are fatal to the host process: callers convert them into
user-visible text or a structured error at the boundary.
"""

from __future__ import annotations


class AdsoraError(RuntimeError):
    """Base class for orchestration failures."""


class ProvisionFailure(AdsoraError):
    """The orchestrator could not hand back a runner URL.

    Terminal for the session-creation attempt; no session row is written.
    """

    def __init__(self, session_uuid: str, reason: str):
        self.session_uuid = session_uuid
        self.reason = reason
        super().__init__(f"Runner provisioning failed for {session_uuid}: {reason}")


class ConfigurationFailure(AdsoraError):
    """A single capability provider could not be installed on a runner."""

    def __init__(self, capability: str, reason: str):
        self.capability = capability
        self.reason = reason
        super().__init__(f"Capability '{capability}' failed to configure: {reason}")


class ToolCallFailure(AdsoraError):
    """The runner was unreachable or answered a tool call badly."""

    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"Tool call '{tool}' failed: {reason}")


class SessionNotFound(AdsoraError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class SessionUnavailable(AdsoraError):
    """The session exists but is closed or errored."""

    def __init__(self, session_id: str, status: str):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session {session_id} is {status}")


class SessionNotReady(AdsoraError):
    """The session did not reach ``active`` within the bounded wait."""

    def __init__(self, session_id: str, waited: float):
        self.session_id = session_id
        self.waited = waited
        super().__init__(
            f"Session {session_id} still provisioning after {waited:.1f}s"
        )


__all__ = [
    "AdsoraError",
    "ProvisionFailure",
    "ConfigurationFailure",
    "ToolCallFailure",
    "SessionNotFound",
    "SessionUnavailable",
    "SessionNotReady",
]
