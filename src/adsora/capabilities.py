"""Capability providers: MCP server definitions pushed onto a runner.

Each descriptor is a launch spec (command, args, env) for one tool-serving
process. The configurator installs them one at a time, in order:

1. meta-ads  - ad-platform control   (tool: meta_ad_interaction)
2. slack     - messaging control     (tool: slack_interaction)
3. gdrive    - file-storage control  (tool: gdrive_interaction)

A provider that fails to install is reported and skipped; the ones already
installed stay usable. Deduplication of repeated installs is the runner's
job; the caller makes sure each session is configured once.
"""

import logging
import re
from dataclasses import dataclass, field

import httpx

from adsora.errors import ConfigurationFailure

logger = logging.getLogger(__name__)

CONFIGURE_TIMEOUT = 30.0  # seconds

_PLACEHOLDER = re.compile(r"\$\{([A-Z0-9_]+)\}")


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Launch spec for one capability provider."""

    name: str
    command: str
    tool: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)

    def resolved_env(self, credentials: dict[str, str] | None = None) -> dict[str, str]:
        """Substitute ``${VAR}`` placeholders from ``credentials``.

        Placeholders with no matching credential are left as-is so the runner
        side can resolve them.
        """
        if not credentials:
            return dict(self.env)
        return {
            key: _PLACEHOLDER.sub(lambda m: credentials.get(m.group(1), m.group(0)), value)
            for key, value in self.env.items()
        }

    def to_payload(self, credentials: dict[str, str] | None = None) -> dict:
        return {
            self.name: {
                "command": self.command,
                "args": list(self.args),
                "env": self.resolved_env(credentials),
            }
        }


META_ADS = CapabilityDescriptor(
    name="meta-ads",
    command="uvx",
    args=["meta-ads-mcp"],
    env={"META_ACCESS_TOKEN": "${META_ACCESS_TOKEN}"},
    tool="meta_ad_interaction",
)

SLACK = CapabilityDescriptor(
    name="slack",
    command="npx",
    args=["-y", "@modelcontextprotocol/server-slack"],
    env={
        "SLACK_BOT_TOKEN": "${SLACK_BOT_TOKEN}",
        "SLACK_TEAM_ID": "${SLACK_TEAM_ID}",
    },
    tool="slack_interaction",
)

GDRIVE = CapabilityDescriptor(
    name="gdrive",
    command="npx",
    args=["-y", "@modelcontextprotocol/server-gdrive"],
    env={"GDRIVE_CREDENTIALS_PATH": "${GDRIVE_CREDENTIALS_PATH}"},
    tool="gdrive_interaction",
)

# Order matters: earlier providers must be usable even if later ones fail.
DEFAULT_CAPABILITIES: tuple[CapabilityDescriptor, ...] = (META_ADS, SLACK, GDRIVE)


@dataclass
class ConfigurationReport:
    """Outcome of configuring one runner."""

    runner_url: str
    configured: list[str] = field(default_factory=list)
    failures: list[ConfigurationFailure] = field(default_factory=list)

    @property
    def overall_status(self) -> str:
        if not self.failures:
            return "healthy"
        if self.configured:
            return "degraded"
        return "unavailable"


class CapabilityConfigurator:
    """Installs capability providers onto a runner, strictly in order."""

    def __init__(
        self,
        timeout: float = CONFIGURE_TIMEOUT,
        credentials: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.credentials = dict(credentials or {})
        self._transport = transport

    async def configure_one(
        self,
        client: httpx.AsyncClient,
        runner_url: str,
        descriptor: CapabilityDescriptor,
    ) -> None:
        """Push one descriptor to ``{runner_url}/config/append``.

        Raises:
            ConfigurationFailure: runner unreachable, timeout, or non-2xx.
        """
        try:
            response = await client.post(
                f"{runner_url.rstrip('/')}/config/append",
                json=descriptor.to_payload(self.credentials),
                headers={"Accept": "application/json"},
            )
        except httpx.TimeoutException:
            raise ConfigurationFailure(descriptor.name, f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ConfigurationFailure(descriptor.name, f"runner unreachable: {e}")

        if not response.is_success:
            raise ConfigurationFailure(
                descriptor.name, f"runner returned {response.status_code}"
            )

    async def configure(
        self,
        runner_url: str,
        descriptors: tuple[CapabilityDescriptor, ...] | list[CapabilityDescriptor] = DEFAULT_CAPABILITIES,
    ) -> ConfigurationReport:
        """Install every descriptor sequentially and report the outcome.

        Never raises for a provider failure; failures land in the report.
        """
        if not runner_url:
            raise ValueError("Cannot configure capabilities without a runner URL")

        report = ConfigurationReport(runner_url=runner_url)
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            for descriptor in descriptors:
                try:
                    await self.configure_one(client, runner_url, descriptor)
                except ConfigurationFailure as failure:
                    logger.warning(str(failure))
                    report.failures.append(failure)
                    continue
                report.configured.append(descriptor.name)
                logger.info(f"Configured capability '{descriptor.name}' on {runner_url}")

        logger.info(
            f"Capability configuration for {runner_url}: {report.overall_status} "
            f"({len(report.configured)}/{len(descriptors)} installed)"
        )
        return report
