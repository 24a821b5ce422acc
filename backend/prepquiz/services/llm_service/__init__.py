"""LLM service module.

Provides the generative-AI access layer (Google Gemini, local Ollama).

Key modules:
- llm.py: Provider factory and client creation
- structured_invoker.py: Retry/backoff, JSON parsing and validation
- llm_schemas.py: Pydantic models and provider response schemas
"""
