"""In-memory chat transcript for one interactive conversation.

Messages are never persisted; they live as long as the Conversation object.
"""

import logging
import time
from dataclasses import dataclass, field

from adsora.errors import AdsoraError, ProvisionFailure
from adsora.manager import SessionManager
from adsora.sessions import Session

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Hello! I'm your AdSora assistant. I can help you create and launch ad "
    "campaigns on Meta. What would you like to do today?"
)
READY_MESSAGE = (
    "I'm now ready to help you with Meta ads, Slack integration, and file "
    "uploads from Google Drive."
)
DEGRADED_MESSAGE = (
    "I'm having trouble setting up some of my capabilities. "
    "I'll do my best with what's available."
)
CONNECT_FAILED_MESSAGE = "I'm having trouble connecting. Please try again later."


@dataclass
class ChatMessage:
    role: str  # "user" or "assistant"
    content: str
    timestamp: float = field(default_factory=time.time)
    id: str = ""

    def __post_init__(self):
        if self.role not in ("user", "assistant"):
            raise ValueError(f"Unknown role: {self.role}")
        if not self.id:
            self.id = f"msg_{int(self.timestamp * 1000)}"


class Conversation:
    """A user's chat with one session, plus its transcript."""

    def __init__(self, manager: SessionManager, user_id: str, session_id: str | None = None):
        self.manager = manager
        self.user_id = user_id
        self.session_id = session_id
        self.messages: list[ChatMessage] = [ChatMessage("assistant", WELCOME_MESSAGE)]

    def add_message(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role, content)
        self.messages.append(message)
        return message

    async def start(self) -> Session | None:
        """Create a session unless one was given; resume it otherwise.

        Returns None when the session could not be brought up; the failure is
        reported in the transcript.
        """
        if self.session_id:
            try:
                return await self.manager.wait_until_active(self.session_id)
            except AdsoraError as e:
                logger.warning(f"Cannot resume {self.session_id}: {e}")
                self.add_message("assistant", CONNECT_FAILED_MESSAGE)
                return None

        try:
            session = await self.manager.create_session(self.user_id)
        except ProvisionFailure:
            self.add_message("assistant", CONNECT_FAILED_MESSAGE)
            return None

        self.session_id = session.id
        if len(session.capabilities or []) == len(self.manager.capabilities):
            self.add_message("assistant", READY_MESSAGE)
        else:
            self.add_message("assistant", DEGRADED_MESSAGE)
        return session

    async def ask(self, text: str) -> str:
        """Send ``text`` and record both sides of the exchange."""
        if not self.session_id:
            raise RuntimeError("Conversation has no session; call start() first")
        self.add_message("user", text.strip())
        try:
            reply = await self.manager.send_message(self.session_id, text)
        except AdsoraError as e:
            logger.warning(f"Message not delivered: {e}")
            reply = CONNECT_FAILED_MESSAGE
        self.add_message("assistant", reply)
        return reply
