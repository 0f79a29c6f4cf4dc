#!/usr/bin/env python3
"""
Runner script for the Voice Chat Loop.

This script runs one conversation session with settings taken from the
environment (and a .env file, if present). Say "goodbye" to end it.

Usage:
    python run_chatbot.py
"""

import asyncio
from voice_chat_loop import VoiceChatLoop, Config


async def main():
    """Run the chatbot with configuration from the environment."""
    chatbot = VoiceChatLoop(Config.from_env())
    result = await chatbot.run()
    print(f"Conversation ended after {result.turns} turn(s) ({result.reason.value}). Goodbye!")


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
