#!/usr/bin/env python3
"""
Conversation history and chat completion for the voice chat loop.
"""

import time
from typing import Any, Dict, List, Optional

import httpx
import ollama

from .config import default_config, Config
from .errors import LanguageModelError


class Conversation:
    """Ordered, append-only chat history opened by a single system message."""

    def __init__(self, system_prompt: str):
        self.messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]

    def add_user(self, text: str):
        """Add user message to conversation history."""
        self.messages.append({"role": "user", "content": text})

    def add_assistant(self, text: str):
        """Add assistant message to conversation history."""
        self.messages.append({"role": "assistant", "content": text})

    def discard_last_user(self):
        """Drop a trailing user message that never received a reply."""
        if len(self.messages) > 1 and self.messages[-1]["role"] == "user":
            self.messages.pop()

    def history(self) -> List[Dict[str, Any]]:
        """Get conversation history."""
        return list(self.messages)

    def __len__(self) -> int:
        return len(self.messages)


class LanguageModelProcessor:
    """Sends the whole conversation to an Ollama chat model and records the reply.

    The user message is appended before the request and the assistant
    message after it, so a failed request leaves an unanswered user message
    in history unless config.keep_unanswered_user_message is False.
    """

    def __init__(self, config: Optional[Config] = None, client: Optional[ollama.AsyncClient] = None,
                 conversation: Optional[Conversation] = None):
        self.config = config or default_config
        self.client = client or ollama.AsyncClient(
            host=self.config.ollama_host,
            timeout=self.config.request_timeout_s,
        )
        self.conversation = conversation or Conversation(self.config.load_system_prompt())
        self.last_elapsed_ms: Optional[int] = None

    async def process(self, text: Optional[str]) -> Optional[str]:
        """Return the assistant reply to text, or None without a request when text is empty."""
        if not text:
            return None

        self.conversation.add_user(text)

        start_time = time.monotonic()
        try:
            response = await self.client.chat(
                model=self.config.ollama_model,
                messages=self.conversation.history(),
                options={
                    "temperature": self.config.temperature,
                    "num_predict": self.config.max_tokens,
                },
            )
        except (ollama.ResponseError, httpx.HTTPError, ConnectionError) as e:
            if not self.config.keep_unanswered_user_message:
                self.conversation.discard_last_user()
            raise LanguageModelError(f"Chat request failed: {e}") from e

        self.last_elapsed_ms = int((time.monotonic() - start_time) * 1000)
        message = response.get("message") or {}
        reply = message.get("content") or ""
        print(f"LLM ({self.last_elapsed_ms}ms): {reply}", flush=True)

        self.conversation.add_assistant(reply)
        return reply

    def history(self) -> List[Dict[str, Any]]:
        return self.conversation.history()
