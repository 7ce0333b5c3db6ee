"""Tests for the tool-calling agent."""
import json

import pytest
from pydantic import BaseModel

from aidemo.errors import EmptyResponseError, InvalidArgumentError
from aidemo.services.agent import DEFAULT_AGENT_SYSTEM_PROMPT, AgentService, parse_tool_call
from aidemo.tools.registry import Tool, ToolRegistry
from tests.helpers import chat_reply


class QuestionInput(BaseModel):
    question: str


async def fake_answer(input_data: QuestionInput) -> str:
    return f"知识库答案: {input_data.question}"


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register(
        Tool(name="answerQuestion", description="Answer from the knowledge base", input_model=QuestionInput, handler=fake_answer)
    )
    return registry


@pytest.fixture
def agent(fake_llm, registry):
    return AgentService(llm=fake_llm, registry=registry, max_tool_iterations=3)


class TestParseToolCall:
    def test_plain_json(self):
        assert parse_tool_call('{"tool": "x", "args": {"a": 1}}') == {"tool": "x", "args": {"a": 1}}

    def test_markdown_code_block(self):
        text = 'Sure:\n```json\n{"tool": "x", "args": {"nested": {"k": "v"}}}\n```'

        assert parse_tool_call(text) == {"tool": "x", "args": {"nested": {"k": "v"}}}

    def test_missing_args_defaults_to_empty(self):
        assert parse_tool_call('{"tool": "loadAllDocuments"}') == {"tool": "loadAllDocuments", "args": {}}

    @pytest.mark.parametrize(
        "text",
        ["Just a normal answer.", '{"answer": 42}', '{"tool": "x", "args": {', "{not json}"],
    )
    def test_not_a_tool_call(self, text):
        assert parse_tool_call(text) is None


@pytest.mark.asyncio
async def test_plain_answer_needs_no_tool(agent, fake_llm):
    fake_llm.chat.return_value = chat_reply("你好！")

    assert await agent.chat("你好") == "你好！"
    system_message = fake_llm.chat.await_args.args[0][0]
    assert system_message["role"] == "system"
    assert system_message["content"].startswith(DEFAULT_AGENT_SYSTEM_PROMPT)
    assert "Tool: answerQuestion" in system_message["content"]


@pytest.mark.asyncio
async def test_tool_result_is_fed_back(agent, fake_llm):
    fake_llm.chat.side_effect = [
        chat_reply(json.dumps({"tool": "answerQuestion", "args": {"question": "退货政策"}})),
        chat_reply("根据知识库，30天内可退货。"),
    ]

    answer = await agent.chat("退货政策是什么？")

    assert answer == "根据知识库，30天内可退货。"
    messages = fake_llm.chat.await_args.args[0]
    assert "知识库答案: 退货政策" in messages[-1]["content"]


@pytest.mark.asyncio
async def test_failed_tool_asks_for_direct_answer(agent, fake_llm):
    fake_llm.chat.side_effect = [
        chat_reply('{"tool": "unknownTool", "args": {}}'),
        chat_reply("直接回答"),
    ]

    assert await agent.chat("问题") == "直接回答"
    assert "工具调用失败" in fake_llm.chat.await_args.args[0][-1]["content"]


@pytest.mark.asyncio
async def test_malformed_tool_name_is_fed_back(agent, fake_llm):
    fake_llm.chat.side_effect = [
        chat_reply('{"tool": ["answerQuestion"], "args": {}}'),
        chat_reply("done"),
    ]

    assert await agent.chat("hi") == "done"
    assert "工具调用失败" in fake_llm.chat.await_args.args[0][-1]["content"]


@pytest.mark.asyncio
async def test_iteration_limit_returns_last_reply(agent, fake_llm):
    tool_call = json.dumps({"tool": "answerQuestion", "args": {"question": "q"}})
    fake_llm.chat.return_value = chat_reply(tool_call)

    assert await agent.chat("loop forever") == tool_call
    assert fake_llm.chat.await_count == 3


@pytest.mark.asyncio
async def test_custom_system_prompt_replaces_default(agent, fake_llm):
    fake_llm.chat.return_value = chat_reply("ok")

    await agent.chat_with_system_prompt("你是客服。", "hi")

    assert fake_llm.chat.await_args.args[0][0]["content"].startswith("你是客服。")


@pytest.mark.asyncio
async def test_blank_message_is_invalid(agent, fake_llm):
    with pytest.raises(InvalidArgumentError):
        await agent.chat("  ")
    fake_llm.chat.assert_not_awaited()


@pytest.mark.asyncio
async def test_blank_reply_is_an_error(agent, fake_llm):
    fake_llm.chat.return_value = chat_reply("  ")

    with pytest.raises(EmptyResponseError):
        await agent.chat("hi")
