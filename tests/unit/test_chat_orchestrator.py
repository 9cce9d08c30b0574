"""Unit tests for ChatOrchestrator."""

import asyncio

import pytest

from casebase.chat import ChatOrchestrator
from casebase.chat.orchestrator import ERROR_REPLY
from casebase.exceptions import CompletionError, NetworkError
from casebase.models.chat import Role


class FakeEngine:
    """Records calls; replies with a canned answer or raises."""

    def __init__(self, reply="Hello!", error=None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.gate = None

    async def complete(self, prior_turns, new_user_text):
        self.calls.append((list(prior_turns), new_user_text))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


async def converse(chat, *texts):
    for text in texts:
        await chat.send(text)


@pytest.mark.unit
class TestChatOrchestrator:

    @pytest.mark.asyncio
    async def test_send_appends_user_and_reply(self):
        engine = FakeEngine(reply="Hi there")
        chat = ChatOrchestrator(engine)

        reply = await chat.send("Hello")

        assert [m.role for m in chat.messages] == [Role.USER, Role.ASSISTANT]
        assert chat.messages[0].content == "Hello"
        assert reply is chat.messages[1]
        assert reply.content == "Hi there"
        assert chat.is_processing is False
        assert engine.calls == [([], "Hello")]

    @pytest.mark.asyncio
    async def test_prior_turns_exclude_new_message(self):
        engine = FakeEngine(reply="ok")
        chat = ChatOrchestrator(engine)

        await converse(chat, "first", "second")

        prior, text = engine.calls[1]
        assert text == "second"
        assert prior == [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "ok"},
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_input_is_ignored(self, text):
        engine = FakeEngine()
        chat = ChatOrchestrator(engine)

        assert await chat.send(text) is None
        assert chat.messages == []
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_send_uses_pending_input(self):
        engine = FakeEngine()
        chat = ChatOrchestrator(engine)
        chat.append_transcribed_text("what is")
        chat.append_transcribed_text("a tort")

        await chat.send()

        assert engine.calls[0][1] == "what is a tort"
        assert chat.pending_input == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [CompletionError("OpenAI API error: boom", status=500), NetworkError("down")])
    async def test_backend_failure_becomes_apology(self, error):
        chat = ChatOrchestrator(FakeEngine(error=error))

        reply = await chat.send("Hello")

        assert reply.role is Role.ASSISTANT
        assert reply.content == ERROR_REPLY
        assert len(chat.messages) == 2
        assert chat.is_processing is False

    @pytest.mark.asyncio
    async def test_concurrent_send_is_refused(self):
        engine = FakeEngine()
        engine.gate = asyncio.Event()
        chat = ChatOrchestrator(engine)

        first = asyncio.create_task(chat.send("one"))
        await asyncio.sleep(0)
        assert chat.is_processing is True

        assert await chat.send("two") is None
        assert chat.retry(chat.messages[0].id) is False

        engine.gate.set()
        await first
        assert [m.content for m in chat.messages] == ["one", "Hello!"]
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_retry_rewinds_to_user_turn(self):
        chat = ChatOrchestrator(FakeEngine(reply="answer"))
        await converse(chat, "q1", "q2")
        last_reply = chat.messages[-1]

        assert chat.retry(last_reply.id) is True

        assert [m.content for m in chat.messages] == ["q1", "answer"]
        assert chat.pending_input == "q2"

    @pytest.mark.asyncio
    async def test_retry_without_preceding_user_turn(self):
        chat = ChatOrchestrator(FakeEngine())
        await chat.send("q1")
        user_message = chat.messages[0]

        assert chat.retry(user_message.id) is False
        assert chat.retry("unknown") is False
        assert len(chat.messages) == 2
        assert chat.pending_input == ""

    @pytest.mark.asyncio
    async def test_edit_and_delete(self):
        chat = ChatOrchestrator(FakeEngine())
        await converse(chat, "q1", "q2")
        ids = [m.id for m in chat.messages]

        assert chat.edit(ids[2], "q2 edited") is True
        assert chat.get(ids[2]).content == "q2 edited"
        assert [m.id for m in chat.messages] == ids

        assert chat.delete(ids[1]) is True
        assert [m.id for m in chat.messages] == [ids[0], ids[2], ids[3]]
        assert chat.delete(ids[1]) is False
        assert chat.edit("unknown", "x") is False

    @pytest.mark.asyncio
    async def test_on_change_and_clear(self):
        changes = []
        chat = ChatOrchestrator(FakeEngine(), on_change=lambda: changes.append(len(chat.messages)))

        await chat.send("hi")
        chat.clear()

        assert changes == [1, 2, 0]
        assert chat.messages == []
