"""Tests for adsora.conversation - in-memory chat transcript."""

import httpx
import pytest

from adsora.conversation import (
    CONNECT_FAILED_MESSAGE,
    DEGRADED_MESSAGE,
    READY_MESSAGE,
    WELCOME_MESSAGE,
    ChatMessage,
    Conversation,
)


class TestChatMessage:

    def test_id_from_timestamp(self):
        msg = ChatMessage("user", "hi", timestamp=1700000000.5)
        assert msg.id == "msg_1700000000500"

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            ChatMessage("system", "hi")


class TestConversation:

    def test_starts_with_welcome(self, manager):
        conversation = Conversation(manager, "user-1")
        assert conversation.messages[0].role == "assistant"
        assert conversation.messages[0].content == WELCOME_MESSAGE

    @pytest.mark.asyncio
    async def test_start_creates_session(self, manager):
        conversation = Conversation(manager, "user-1")
        session = await conversation.start()
        assert session is not None
        assert conversation.session_id == session.id
        assert conversation.messages[-1].content == READY_MESSAGE

    @pytest.mark.asyncio
    async def test_degraded_notice(self, manager, remote):
        remote.failing_capabilities = {"slack"}
        conversation = Conversation(manager, "user-1")
        await conversation.start()
        assert conversation.messages[-1].content == DEGRADED_MESSAGE

    @pytest.mark.asyncio
    async def test_provision_failure_reported(self, manager, remote):
        remote.deploy_response = httpx.Response(500)
        conversation = Conversation(manager, "user-1")
        assert await conversation.start() is None
        assert conversation.session_id is None
        assert conversation.messages[-1].content == CONNECT_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_resume_existing_session(self, manager):
        session = await manager.create_session("user-1")
        conversation = Conversation(manager, "user-1", session_id=session.id)
        resumed = await conversation.start()
        assert resumed.id == session.id

    @pytest.mark.asyncio
    async def test_resume_unknown_session(self, manager):
        conversation = Conversation(manager, "user-1", session_id="session_missing")
        assert await conversation.start() is None
        assert conversation.messages[-1].content == CONNECT_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_ask_records_both_turns(self, manager):
        conversation = Conversation(manager, "user-1")
        await conversation.start()
        reply = await conversation.ask("connect my slack")
        assert reply == "slack_interaction handled: connect my slack"
        assert [m.role for m in conversation.messages[-2:]] == ["user", "assistant"]
        assert conversation.messages[-2].content == "connect my slack"

    @pytest.mark.asyncio
    async def test_ask_before_start(self, manager):
        with pytest.raises(RuntimeError):
            await Conversation(manager, "user-1").ask("hi")
