"""Intent routing: map a chat message to a capability tool and call it.

Classification is a flat, ordered, case-insensitive keyword scan. The first
rule that matches wins, so the order below is significant:

1. ad / campaign / meta        -> meta_ad_interaction  {query, userId}
2. slack                       -> slack_interaction    {query, userId}
3. drive / file / upload       -> gdrive_interaction   {query, userId}
4. anything else               -> default_conversation {query}

"ad" only counts at the start of a word ("ad", "ads", "adset"); every other
keyword is a plain substring. Otherwise "upload" would always land on rule 1.

The router keeps no per-session state: each call depends only on
(message, runner_url).
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from adsora.errors import ToolCallFailure

logger = logging.getLogger(__name__)

TOOL_CALL_TIMEOUT = 60.0  # seconds

FALLBACK_RESPONSE = "I'm having trouble processing your request right now."


class Tool(str, Enum):
    """Closed set of tools the router can select."""

    META_AD = "meta_ad_interaction"
    SLACK = "slack_interaction"
    GDRIVE = "gdrive_interaction"
    DEFAULT = "default_conversation"


# (tool, patterns) in priority order
_RULES: tuple[tuple[Tool, tuple[re.Pattern, ...]], ...] = (
    (Tool.META_AD, (re.compile(r"\bad"), re.compile("campaign"), re.compile("meta"))),
    (Tool.SLACK, (re.compile("slack"),)),
    (Tool.GDRIVE, (re.compile("drive"), re.compile("file"), re.compile("upload"))),
)


@dataclass
class Intent:
    """Classification result: tool name plus parameter bag."""

    tool: Tool
    params: dict[str, Any]

    @property
    def name(self) -> str:
        return self.tool.value


@dataclass
class RouteResult:
    """What happened to one routed message."""

    intent: Intent
    response: str
    dispatched: bool = True
    raw: dict[str, Any] = field(default_factory=dict)


def classify(message: str, user_id: str | None = None) -> Intent:
    """Pick the tool for ``message``. Pure function of its inputs."""
    text = message.lower()
    for tool, patterns in _RULES:
        if any(p.search(text) for p in patterns):
            return Intent(tool=tool, params={"query": message, "userId": user_id})
    return Intent(tool=Tool.DEFAULT, params={"query": message})


class IntentRouter:
    """Classifies messages and forwards tool calls to a runner."""

    def __init__(
        self,
        timeout: float = TOOL_CALL_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def classify(self, message: str, user_id: str | None = None) -> Intent:
        return classify(message, user_id)

    async def _request(
        self, method: str, url: str, tool: str, payload: dict | None = None
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    url,
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException:
            raise ToolCallFailure(tool, f"timed out after {self.timeout}s")
        except httpx.HTTPError as e:
            raise ToolCallFailure(tool, f"runner unreachable: {e}")

        if not response.is_success:
            raise ToolCallFailure(tool, f"runner returned {response.status_code}")
        try:
            return response.json()
        except ValueError:
            raise ToolCallFailure(tool, "runner returned a non-JSON body")

    async def call_tool(self, runner_url: str, tool: str, params: dict[str, Any]) -> str:
        """Invoke ``tool`` on the runner and return its ``response`` text.

        Returns FALLBACK_RESPONSE when the runner answers without a usable
        ``response`` field.

        Raises:
            ToolCallFailure: runner unreachable, timeout, non-2xx, or non-JSON.
        """
        if not runner_url:
            raise ValueError("Cannot call a tool without a runner URL")

        data = await self._request(
            "POST",
            f"{runner_url.rstrip('/')}/tools/call",
            tool,
            {"name": tool, "params": params},
        )
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str) or not text:
            logger.debug(f"Tool '{tool}' answered without a response field")
            return FALLBACK_RESPONSE
        return text

    async def route(
        self,
        message: str,
        runner_url: str,
        user_id: str | None = None,
        available_tools: list[str] | None = None,
    ) -> RouteResult:
        """Classify ``message`` and dispatch it to the runner.

        When ``available_tools`` is given, a capability tool missing from it
        is not called; the fallback text comes back instead.
        """
        intent = self.classify(message, user_id)

        if (
            available_tools is not None
            and intent.tool != Tool.DEFAULT
            and intent.name not in available_tools
        ):
            logger.info(f"Tool '{intent.name}' not configured on {runner_url}, using fallback")
            return RouteResult(intent=intent, response=FALLBACK_RESPONSE, dispatched=False)

        response = await self.call_tool(runner_url, intent.name, intent.params)
        return RouteResult(intent=intent, response=response)

    async def list_tools(self, runner_url: str) -> list[dict[str, Any]]:
        """List the tools a runner currently exposes.

        Accepts either a bare JSON list or ``{"tools": [...]}``.
        """
        if not runner_url:
            raise ValueError("Cannot list tools without a runner URL")
        data = await self._request("GET", f"{runner_url.rstrip('/')}/tools/list", "tools/list")
        if isinstance(data, dict):
            data = data.get("tools", [])
        if not isinstance(data, list):
            raise ToolCallFailure("tools/list", "runner returned an unexpected tool listing")
        return [t if isinstance(t, dict) else {"name": str(t)} for t in data]
