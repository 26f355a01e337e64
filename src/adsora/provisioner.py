"""Runner provisioning via the remote orchestrator.

Architecture:
    SessionManager → POST {deploy_url} {"id": <session uuid>} → orchestrator
    orchestrator → {"url": <runner base URL>}

Every call creates a billable remote runner. Nothing here rolls that back if
a later step fails, and nothing retries: a failure is terminal for the
session-creation attempt that triggered it.
"""

import logging

import httpx

from adsora.config import DEFAULT_DEPLOY_URL
from adsora.errors import ProvisionFailure

logger = logging.getLogger(__name__)

PROVISION_TIMEOUT = 60.0  # seconds


class RunnerProvisioner:
    """Client for the runner orchestrator's deploy endpoint."""

    def __init__(
        self,
        deploy_url: str = DEFAULT_DEPLOY_URL,
        timeout: float = PROVISION_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.deploy_url = deploy_url
        self.timeout = timeout
        self._transport = transport

    async def provision(self, session_uuid: str) -> str:
        """Request a new runner for ``session_uuid`` and return its base URL.

        Raises:
            ProvisionFailure: unreachable endpoint, timeout, non-2xx status,
                unparseable body, or a missing or malformed ``url``.
        """
        logger.info(f"Provisioning runner for session {session_uuid}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.deploy_url,
                    json={"id": session_uuid},
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException:
            raise self._fail(session_uuid, f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise self._fail(session_uuid, f"orchestrator unreachable: {e}")

        if not response.is_success:
            raise self._fail(session_uuid, f"orchestrator returned {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise self._fail(session_uuid, "orchestrator returned a non-JSON body")

        url = data.get("url") if isinstance(data, dict) else None
        if not url or not isinstance(url, str):
            raise self._fail(session_uuid, "orchestrator response has no runner url")

        url = url.strip().rstrip("/")
        if not _is_runner_url(url):
            raise self._fail(session_uuid, "orchestrator returned an invalid runner url")

        logger.info(f"Runner ready for session {session_uuid}: {url}")
        return url

    def _fail(self, session_uuid: str, reason: str) -> ProvisionFailure:
        logger.error(f"Provisioning failed for {session_uuid}: {reason}")
        return ProvisionFailure(session_uuid, reason)


def _is_runner_url(url: str) -> bool:
    """Absolute http(s) URL with a host and no embedded whitespace."""
    if not url or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)
