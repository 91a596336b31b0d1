"""OpenAI-compatible LLM backends."""
