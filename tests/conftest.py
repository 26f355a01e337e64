"""Shared test fixtures for the Adsora test suite."""

import json

import httpx
import pytest

from adsora.capabilities import CapabilityConfigurator
from adsora.manager import SessionManager
from adsora.provisioner import RunnerProvisioner
from adsora.router import IntentRouter
from adsora.sessions import SessionStore

DEPLOY_URL = "https://orchestrator.test/deploy"
RUNNER_URL = "https://runner-1.test"


class FakeRemote:
    """In-process orchestrator + runner behind an httpx.MockTransport.

    Records every request; individual endpoints can be told to fail.
    """

    def __init__(self, runner_url: str = RUNNER_URL):
        self.runner_url = runner_url
        self.requests: list[httpx.Request] = []
        self.deploy_response: httpx.Response | None = None
        self.failing_capabilities: set[str] = set()
        self.tool_status = 200
        self.tool_body: dict | list | None = None
        self.tools_listing: dict | list = {"tools": [{"name": "meta_ad_interaction"}]}
        self.raise_on: set[str] = set()  # paths that raise ConnectError

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.raise_on:
            raise httpx.ConnectError("connection refused", request=request)

        if request.url.host == "orchestrator.test":
            if self.deploy_response is not None:
                return self.deploy_response
            return httpx.Response(200, json={"url": self.runner_url})

        if path == "/config/append":
            name = next(iter(json.loads(request.content)))
            if name in self.failing_capabilities:
                return httpx.Response(500, json={"error": "install failed"})
            return httpx.Response(200, json={"status": "ok"})

        if path == "/tools/call":
            body = json.loads(request.content)
            if self.tool_body is not None:
                return httpx.Response(self.tool_status, json=self.tool_body)
            return httpx.Response(
                self.tool_status,
                json={"response": f"{body['name']} handled: {body['params']['query']}"},
            )

        if path == "/tools/list":
            return httpx.Response(200, json=self.tools_listing)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]


@pytest.fixture
def store(tmp_path):
    """Provide a SessionStore backed by a temporary database."""
    return SessionStore(db_path=tmp_path / "test_adsora.db")


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def manager(store, remote):
    """SessionManager wired to the fake orchestrator/runner."""
    transport = remote.transport
    return SessionManager(
        store=store,
        provisioner=RunnerProvisioner(deploy_url=DEPLOY_URL, transport=transport),
        configurator=CapabilityConfigurator(transport=transport),
        router=IntentRouter(transport=transport),
        ready_timeout=0.3,
        poll_interval=0.05,
    )
