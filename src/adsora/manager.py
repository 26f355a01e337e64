"""Session lifecycle: provision a runner, equip it, route chat to it.

State machine per session:

    none -> provisioning -> active
    none -> (provision failure)         no row is written
    provisioning -> error               failure or cancellation after the row exists
    active -> closed                    administrative action only

Order inside create_session is fixed: provision, persist the row with its
runner URL, configure capabilities, mark active. Configuration and routing
never see a session without a runner URL.
"""

import asyncio
import logging
import time
import uuid

from adsora.capabilities import DEFAULT_CAPABILITIES, CapabilityConfigurator, CapabilityDescriptor
from adsora.config import AdsoraConfig
from adsora.errors import (
    ProvisionFailure,
    SessionNotFound,
    SessionNotReady,
    SessionUnavailable,
    ToolCallFailure,
)
from adsora.events import (
    EVENT_CAPABILITY_CONFIGURED,
    EVENT_CAPABILITY_FAILED,
    EVENT_PROVISION_FAILED,
    EVENT_SESSION_ACTIVE,
    EVENT_SESSION_CLOSED,
    EVENT_SESSION_CREATED,
    EVENT_SESSION_ERROR,
    EVENT_TOOL_CALL,
    EVENT_TOOL_CALL_FAILED,
    EventCollector,
)
from adsora.provisioner import RunnerProvisioner
from adsora.router import IntentRouter
from adsora.sessions import Session, SessionStatus, SessionStore

logger = logging.getLogger(__name__)

APOLOGY_RESPONSE = "Sorry, I encountered an error while processing your request."

READY_TIMEOUT = 120.0  # seconds
POLL_INTERVAL = 0.5


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


class SessionManager:
    """Owns session rows and sequences the provisioner, configurator and router."""

    def __init__(
        self,
        store: SessionStore,
        provisioner: RunnerProvisioner,
        configurator: CapabilityConfigurator,
        router: IntentRouter,
        events: EventCollector | None = None,
        capabilities: tuple[CapabilityDescriptor, ...] = DEFAULT_CAPABILITIES,
        ready_timeout: float = READY_TIMEOUT,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.store = store
        self.provisioner = provisioner
        self.configurator = configurator
        self.router = router
        self.events = events or EventCollector(store)
        self.capabilities = capabilities
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval

    @classmethod
    def from_config(
        cls,
        config: AdsoraConfig | None = None,
        store: SessionStore | None = None,
    ) -> "SessionManager":
        """Build a manager with every collaborator wired from config."""
        config = config or AdsoraConfig.load()
        store = store or SessionStore()
        return cls(
            store=store,
            provisioner=RunnerProvisioner(
                deploy_url=config.orchestrator.deploy_url,
                timeout=config.orchestrator.provision_timeout,
            ),
            configurator=CapabilityConfigurator(
                timeout=config.runner.configure_timeout,
                credentials=config.capabilities.credentials,
            ),
            router=IntentRouter(timeout=config.runner.tool_call_timeout),
            ready_timeout=config.session.ready_timeout,
            poll_interval=config.session.poll_interval,
        )

    # --- Creation ---

    async def create_session(self, user_id: str) -> Session:
        """Provision and equip a new session for ``user_id``.

        Exactly one provisioning attempt is made. Concurrent calls for the
        same user each get their own session; deduplication is up to the
        caller.

        Raises:
            ProvisionFailure: no runner URL; nothing was persisted.
        """
        if not user_id:
            raise ValueError("user_id is required")

        session_uuid = str(uuid.uuid4())
        try:
            runner_url = await self.provisioner.provision(session_uuid)
        except ProvisionFailure as e:
            self.events.emit(
                EVENT_PROVISION_FAILED,
                f"Provisioning failed for user {user_id}",
                metadata={"user_id": user_id, "session_uuid": session_uuid, "reason": e.reason},
            )
            raise

        session = self.store.create_session(
            session_id=new_session_id(),
            user_id=user_id,
            session_uuid=session_uuid,
            runner_url=runner_url,
            status=SessionStatus.PROVISIONING,
        )
        self.events.emit(
            EVENT_SESSION_CREATED,
            f"Session created for user {user_id}",
            session_id=session.id,
            metadata={"runner_url": runner_url, "session_uuid": session_uuid},
        )

        # Cancellation included: the row must never be left provisioning
        try:
            return await self._configure_and_activate(session)
        except BaseException as e:
            reason = str(e) or type(e).__name__
            logger.error(f"Session {session.id} failed after provisioning: {reason}")
            self.store.update_session(session.id, status=SessionStatus.ERROR)
            self.events.emit(
                EVENT_SESSION_ERROR,
                f"Session failed: {reason}",
                session_id=session.id,
            )
            raise

    async def _configure_and_activate(self, session: Session) -> Session:
        # The per-session capabilities field is the only "already configured" marker.
        configuration = None
        if not session.is_configured:
            report = await self.configurator.configure(session.runner_url, self.capabilities)
            for name in report.configured:
                self.events.emit(
                    EVENT_CAPABILITY_CONFIGURED,
                    f"Capability '{name}' installed",
                    session_id=session.id,
                    metadata={"capability": name},
                )
            for failure in report.failures:
                self.events.emit(
                    EVENT_CAPABILITY_FAILED,
                    str(failure),
                    session_id=session.id,
                    metadata={"capability": failure.capability, "reason": failure.reason},
                )
            session = self.store.update_session(
                session.id, capabilities=report.configured
            )
            configuration = report.overall_status

        session = self.store.update_session(session.id, status=SessionStatus.ACTIVE)
        self.events.emit(
            EVENT_SESSION_ACTIVE,
            f"Session active with {len(session.capabilities or [])} capabilities",
            session_id=session.id,
            metadata={"capabilities": session.capabilities, "configuration": configuration},
        )
        logger.info(f"Session {session.id} active: capabilities={session.capabilities}")
        return session

    # --- Queries ---

    def get_session(self, session_id: str) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def list_sessions(self, user_id: str, status: SessionStatus | None = None) -> list[Session]:
        """Sessions for ``user_id``, newest first, optionally only those in ``status``."""
        return self.store.list_sessions(user_id, status=status)

    def available_tools(self, session: Session) -> list[str]:
        names = set(session.capabilities or [])
        return [c.tool for c in self.capabilities if c.name in names]

    # --- Chat ---

    async def wait_until_active(self, session_id: str, timeout: float | None = None) -> Session:
        """Block until the session is active, bounded by ``timeout``.

        Raises:
            SessionNotFound, SessionUnavailable, SessionNotReady
        """
        timeout = self.ready_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            session = self.get_session(session_id)
            if session.is_active:
                return session
            if session.status in (SessionStatus.CLOSED, SessionStatus.ERROR):
                raise SessionUnavailable(session_id, session.status.value)
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise SessionNotReady(session_id, timeout)
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def send_message(self, session_id: str, text: str) -> str:
        """Route one chat message and return the response text.

        Tool-call failures turn into APOLOGY_RESPONSE; the conversation
        carries on.
        """
        if not text or not text.strip():
            raise ValueError("Message text is required")

        session = await self.wait_until_active(session_id)

        try:
            result = await self.router.route(
                text,
                session.runner_url,
                user_id=session.user_id,
                available_tools=self.available_tools(session),
            )
        except ToolCallFailure as e:
            logger.warning(f"Session {session_id}: {e}")
            self.events.emit(
                EVENT_TOOL_CALL_FAILED,
                str(e),
                session_id=session_id,
                metadata={"tool": e.tool, "reason": e.reason},
            )
            return APOLOGY_RESPONSE

        self.events.emit(
            EVENT_TOOL_CALL,
            f"Routed to {result.intent.name}",
            session_id=session_id,
            metadata={"tool": result.intent.name, "dispatched": result.dispatched},
        )
        return result.response

    async def list_tools(self, session_id: str) -> list[dict]:
        session = await self.wait_until_active(session_id)
        return await self.router.list_tools(session.runner_url)

    # --- Administration ---

    def close_session(self, session_id: str) -> Session:
        self.get_session(session_id)
        session = self.store.update_session(session_id, status=SessionStatus.CLOSED)
        self.events.emit(EVENT_SESSION_CLOSED, "Session closed", session_id=session_id)
        return session
