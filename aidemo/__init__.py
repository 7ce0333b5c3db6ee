"""Local AI assistant: chat, structured output, knowledge-base RAG and a tool-calling agent."""
