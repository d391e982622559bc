"""LLM clients (OpenRouter / offline) and the priority suggester built on them."""
