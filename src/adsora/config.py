"""Adsora configuration management."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

ADSORA_HOME = Path(os.environ.get("ADSORA_HOME", Path.home() / ".adsora"))
ADSORA_DB = ADSORA_HOME / "adsora.db"
ADSORA_CONFIG = ADSORA_HOME / "config.json"
ADSORA_LOGS = ADSORA_HOME / "logs"

DEFAULT_DEPLOY_URL = "https://mcp-orchestrator.passthru.ai/deploy"

# Env vars that fill capability credential placeholders
CREDENTIAL_ENV_VARS = (
    "META_ACCESS_TOKEN",
    "SLACK_BOT_TOKEN",
    "SLACK_TEAM_ID",
    "GDRIVE_CREDENTIALS_PATH",
)


@dataclass
class OrchestratorConfig:
    """Runner orchestrator endpoint."""

    deploy_url: str = DEFAULT_DEPLOY_URL
    provision_timeout: float = 60.0


@dataclass
class RunnerConfig:
    """Per-runner call timeouts (seconds)."""

    configure_timeout: float = 30.0
    tool_call_timeout: float = 60.0


@dataclass
class SessionConfig:
    """Bounded wait for chat requests on a session still provisioning."""

    ready_timeout: float = 120.0
    poll_interval: float = 0.5


@dataclass
class CapabilityConfig:
    """Credentials substituted into capability env placeholders.

    Values taken from the environment are used but never written back by
    ``save()``; a file value they shadow is preserved instead.
    """

    credentials: dict[str, str] = field(default_factory=dict)
    env_sourced: set[str] = field(default_factory=set, repr=False)
    shadowed: dict[str, str] = field(default_factory=dict, repr=False)

    def apply_env(self, name: str, value: str) -> None:
        if name in self.credentials and name not in self.env_sourced:
            self.shadowed[name] = self.credentials[name]
        self.credentials[name] = value
        self.env_sourced.add(name)

    def set_credential(self, name: str, value: str) -> None:
        """Set a credential that ``save()`` will persist."""
        self.credentials[name] = value
        self.env_sourced.discard(name)
        self.shadowed.pop(name, None)

    def persistable(self) -> dict[str, str]:
        stored = {k: v for k, v in self.credentials.items() if k not in self.env_sourced}
        stored.update(self.shadowed)
        return stored


@dataclass
class AdsoraConfig:
    """Top-level Adsora configuration."""

    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    capabilities: CapabilityConfig = field(default_factory=CapabilityConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "AdsoraConfig":
        """Load config from disk or return defaults.

        Environment variables override file values for the orchestrator URL
        and for capability credentials.
        """
        path = path or ADSORA_CONFIG
        config = cls()
        if path.exists():
            data = json.loads(path.read_text())
            if "orchestrator" in data:
                for k, v in data["orchestrator"].items():
                    setattr(config.orchestrator, k, v)
            if "runner" in data:
                for k, v in data["runner"].items():
                    setattr(config.runner, k, v)
            if "session" in data:
                for k, v in data["session"].items():
                    setattr(config.session, k, v)
            if "capabilities" in data:
                config.capabilities.credentials.update(
                    data["capabilities"].get("credentials", {})
                )

        deploy_url = os.environ.get("ADSORA_ORCHESTRATOR_URL")
        if deploy_url:
            config.orchestrator.deploy_url = deploy_url

        for var in CREDENTIAL_ENV_VARS:
            value = os.environ.get(var)
            if value:
                config.capabilities.apply_env(var, value)

        return config

    def save(self, path: Path | None = None) -> None:
        """Persist config to disk."""
        path = path or ADSORA_CONFIG
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "orchestrator": {
                "deploy_url": self.orchestrator.deploy_url,
                "provision_timeout": self.orchestrator.provision_timeout,
            },
            "runner": {
                "configure_timeout": self.runner.configure_timeout,
                "tool_call_timeout": self.runner.tool_call_timeout,
            },
            "session": {
                "ready_timeout": self.session.ready_timeout,
                "poll_interval": self.session.poll_interval,
            },
            "capabilities": {
                "credentials": self.capabilities.persistable(),
            },
        }
        path.write_text(json.dumps(data, indent=2))


def ensure_adsora_home() -> None:
    """Create Adsora home directory structure."""
    ADSORA_HOME.mkdir(parents=True, exist_ok=True)
    ADSORA_LOGS.mkdir(parents=True, exist_ok=True)
