"""Generative-AI proxy: Gemini client, prompts and endpoint dispatch."""

from finantech.ai.client import GeminiClient, GeminiResponse
from finantech.ai.proxy import GeminiProxy
from finantech.ai.proxy_client import ProxyClient

__all__ = ["GeminiClient", "GeminiResponse", "GeminiProxy", "ProxyClient"]
