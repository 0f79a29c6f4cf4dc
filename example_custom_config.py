#!/usr/bin/env python3
"""
Example usage of the Voice Chat Loop module with custom configuration.

This demonstrates how to customize the chatbot behavior by overriding
configuration fields.
"""

import asyncio
from voice_chat_loop import VoiceChatLoop, Config


def build_config() -> Config:
    """Custom configuration example."""
    return Config.from_env(
        # Capture and recognize at 24 kHz; both sides use this one value
        sample_rate=24000,
        # Use a different model
        ollama_model="llama3.2:3b",
        # End on a different phrase
        termination_phrase="see you later",
        # Bound the whole session to two minutes
        session_timeout_s=120,
        # Keep talking when the model or synthesis fails for one turn
        on_turn_error="skip",
        # Use the inline prompt below even if SYSTEM_PROMPT_PATH is set
        system_prompt_path=None,
        system_prompt="""
    You are Eliza, a helpful and friendly AI assistant. You speak in a warm, conversational tone
    and keep your answers brief but informative.
    """,
    )


async def main():
    """Run the chatbot with custom configuration."""
    chatbot = VoiceChatLoop(config=build_config())
    await chatbot.run()


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nGoodbye!")
