"""Small builders shared by the test modules."""


def chat_reply(content: str) -> dict:
    """Shape of an Ollama /api/chat response."""
    return {"model": "qwen2.5:7b", "message": {"role": "assistant", "content": content}, "done": True}
