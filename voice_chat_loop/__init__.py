#!/usr/bin/env python3
"""
Voice Chat Loop
===============

A turn-taking voice assistant (listen -> transcribe -> ask the model -> speak)
built on network services: Deepgram live recognition, an Ollama chat model
and Deepgram synthesis played through ffplay.

Features
--------
1. Microphone capture (16 kHz mono by default) with sounddevice RawInputStream;
   the same sample rate is sent to the recognizer.
2. One Deepgram live recognition session per utterance; partial and final
   fragments are accumulated and the session closes after the first final
   non-empty utterance.
3. Full conversation history sent to Ollama with temperature 0.
4. Deepgram synthesis streamed into ffplay as it arrives, with time to first
   byte recorded on the speaker.
5. Session ends when the user says the termination phrase ("goodbye" by
   default) or when the optional session timeout fires.

Quick Start
-----------
```python
from voice_chat_loop import VoiceChatLoop, Config
import asyncio

async def main():
    chatbot = VoiceChatLoop(Config.from_env(session_timeout_s=120))
    await chatbot.run()

if __name__ == '__main__':
    asyncio.run(main())
```
"""

from .core import VoiceChatLoop, LoopState, EndReason, SessionResult
from .config import Config
from .errors import (
    VoiceChatError,
    SpeechToTextError,
    LanguageModelError,
    TextToSpeechError,
    PlayerUnavailableError,
)
from .llm import Conversation, LanguageModelProcessor
from .stt import (
    DeepgramLiveSession,
    MicrophoneStream,
    TranscriptEvent,
    TranscriptEventKind,
    UtteranceListener,
    parse_transcript_message,
)
from .transcript import TranscriptCollector
from .tts import BaseSpeaker, DeepgramSpeaker, create_speaker

__version__ = "1.0.0"
__all__ = [
    'VoiceChatLoop',
    'LoopState',
    'EndReason',
    'SessionResult',
    'Config',
    'VoiceChatError',
    'SpeechToTextError',
    'LanguageModelError',
    'TextToSpeechError',
    'PlayerUnavailableError',
    'Conversation',
    'LanguageModelProcessor',
    'DeepgramLiveSession',
    'MicrophoneStream',
    'TranscriptEvent',
    'TranscriptEventKind',
    'UtteranceListener',
    'parse_transcript_message',
    'TranscriptCollector',
    'BaseSpeaker',
    'DeepgramSpeaker',
    'create_speaker',
]
