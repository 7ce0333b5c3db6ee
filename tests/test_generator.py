"""Tests for AnswerGenerator and prompt assembly."""
import pytest

from aidemo.errors import EmptyResponseError, InvalidArgumentError
from aidemo.rag.document import UNKNOWN_SOURCE, Document
from aidemo.rag.generator import (
    DEFAULT_RAG_SYSTEM_PROMPT,
    AnswerGenerator,
    build_context,
)


def test_context_keeps_sources_and_contents_in_order():
    documents = [
        Document(content="first content", metadata={"source": "one.txt"}),
        Document(content="second content", metadata={"source": "two.txt"}),
    ]

    context = build_context(documents)

    assert context.index("one.txt") < context.index("first content")
    assert context.index("first content") < context.index("two.txt")
    assert context.index("two.txt") < context.index("second content")
    assert "---" in context


def test_context_labels_unknown_sources():
    assert UNKNOWN_SOURCE in build_context([Document(content="orphan")])


@pytest.mark.asyncio
async def test_blank_system_prompt_uses_default(fake_llm):
    generator = AnswerGenerator(llm=fake_llm)
    documents = [Document(content="Ollama runs models locally", metadata={"source": "ollama.md"})]

    answer = await generator.generate("  ", documents, "What does Ollama do?")

    assert answer == "generated answer"
    system_prompt, user_message = fake_llm.generate.await_args.args
    assert system_prompt == DEFAULT_RAG_SYSTEM_PROMPT
    assert "ollama.md" in user_message
    assert "Ollama runs models locally" in user_message
    assert user_message.endswith("用户问题：What does Ollama do?")


@pytest.mark.asyncio
async def test_user_message_keeps_retrieval_order(fake_llm):
    documents = [
        Document(content="first content", metadata={"source": "one.txt"}),
        Document(content="second content", metadata={"source": "two.txt"}),
    ]

    await AnswerGenerator(llm=fake_llm).generate(None, documents, "question")

    user_message = fake_llm.generate.await_args.args[1]
    positions = [user_message.index(s) for s in ("one.txt", "first content", "two.txt", "second content")]
    assert positions == sorted(positions)


@pytest.mark.asyncio
async def test_custom_system_prompt_is_passed_through(fake_llm):
    await AnswerGenerator(llm=fake_llm).generate("Be terse.", [], "question")

    assert fake_llm.generate.await_args.args[0] == "Be terse."


@pytest.mark.asyncio
async def test_blank_question_is_invalid(fake_llm):
    with pytest.raises(InvalidArgumentError):
        await AnswerGenerator(llm=fake_llm).generate(None, [], " ")
    fake_llm.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_blank_answer_is_an_error(fake_llm):
    fake_llm.generate.return_value = "   "

    with pytest.raises(EmptyResponseError):
        await AnswerGenerator(llm=fake_llm).generate(None, [], "question")
