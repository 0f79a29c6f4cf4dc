#!/usr/bin/env python3
"""
Exceptions raised at the collaborator boundaries of the voice chat loop.
"""


class VoiceChatError(Exception):
    """Base class for every error the conversation loop knows how to report."""


class SpeechToTextError(VoiceChatError):
    """The recognition session or the microphone failed."""


class LanguageModelError(VoiceChatError):
    """The chat completion request failed."""


class TextToSpeechError(VoiceChatError):
    """The synthesis request or audio playback failed."""


class PlayerUnavailableError(TextToSpeechError):
    """The audio playback tool is not installed."""
