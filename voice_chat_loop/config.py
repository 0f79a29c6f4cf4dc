#!/usr/bin/env python3
"""
Configuration settings for the voice chat loop using Pydantic.
"""

import os
from pathlib import Path
from typing import List, Literal, Optional
from urllib.parse import urlencode

from dotenv import load_dotenv
from pydantic import BaseModel, Field, computed_field, ConfigDict, field_validator


DEEPGRAM_LISTEN_URL = "wss://api.deepgram.com/v1/listen"
DEEPGRAM_SPEAK_URL = "https://api.deepgram.com/v1/speak"


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


def _prompt_path_from_env() -> Optional[Path]:
    path = os.getenv("SYSTEM_PROMPT_PATH")
    return Path(path) if path else None


class Config(BaseModel):
    """
    Configuration class for the voice chat loop using Pydantic for validation.

    Credentials, the system prompt, the termination phrase, the shared sample
    rate and the optional session timeout all live here so that the loop
    itself carries no hard-coded settings.
    """

    model_config = ConfigDict(
        extra='forbid',  # Don't allow extra fields
        validate_assignment=True,  # Validate on assignment
        frozen=False,  # Allow modification after creation
    )

    # Credentials
    deepgram_api_key: str = Field(
        default_factory=lambda: os.getenv("DEEPGRAM_API_KEY", ""),
        description="Deepgram API key used for both recognition and synthesis"
    )

    # Audio Configuration
    sample_rate: int = Field(
        default=16000,
        description="Sample rate in Hz shared by microphone capture and the recognition request",
        ge=8000,
        le=48000
    )

    channels: int = Field(
        default=1,
        description="Number of capture channels",
        ge=1,
        le=2
    )

    frame_ms: int = Field(
        default=20,
        description="Milliseconds of audio per microphone frame sent to the recognizer",
        ge=1,
        le=200
    )

    # Speech-to-Text Configuration
    stt_model: str = Field(
        default="nova-2",
        description="Deepgram recognition model"
    )

    stt_language: str = Field(
        default="en-US",
        description="Recognition language"
    )

    punctuate: bool = Field(default=True, description="Ask the recognizer for punctuation")

    smart_format: bool = Field(default=True, description="Ask the recognizer for smart formatting")

    interim_results: bool = Field(
        default=False,
        description="Request interim (partial) results in addition to final ones"
    )

    endpointing_ms: int = Field(
        default=300,
        description="Silence (ms) after which the recognizer finalizes a segment",
        ge=10,
        le=10000
    )

    # LLM Configuration
    ollama_host: Optional[str] = Field(
        default_factory=lambda: os.getenv("OLLAMA_HOST") or None,
        description="Ollama server URL; None uses the client default"
    )

    ollama_model: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_MODEL", "llama3.1:8b-instruct"),
        description="Ollama model name to use for chat completion"
    )

    temperature: float = Field(
        default=0.0,
        description="Sampling temperature; 0 keeps replies reproducible for identical history",
        ge=0.0,
        le=2.0
    )

    max_tokens: int = Field(
        default=512,
        description="Maximum tokens per LLM response",
        ge=1,
        le=4096
    )

    system_prompt: str = Field(
        default="""
You are a helpful voice assistant. Keep responses concise (1-2 sentences typically). Speak as if having a natural conversation.
""",
        description="System prompt for the LLM assistant"
    )

    system_prompt_path: Optional[Path] = Field(
        default_factory=_prompt_path_from_env,
        description="Optional file holding the system prompt; overrides system_prompt when set"
    )

    keep_unanswered_user_message: bool = Field(
        default=True,
        description="Leave the user message in history when the chat request fails"
    )

    # Text-to-Speech Configuration
    tts_model: str = Field(
        default="aura-helios-en",
        description="Deepgram synthesis voice model"
    )

    tts_sample_rate: int = Field(
        default=24000,
        description="Sample rate of synthesized linear16 audio",
        ge=8000,
        le=48000
    )

    player_command: List[str] = Field(
        default=["ffplay", "-autoexit", "-nodisp", "-loglevel", "quiet", "-"],
        description="Playback command; audio bytes are written to its standard input"
    )

    request_timeout_s: float = Field(
        default=30.0,
        description="Timeout for individual HTTP requests and socket handshakes",
        gt=0.0,
        le=600.0
    )

    # Session Configuration
    termination_phrase: str = Field(
        default="goodbye",
        description="Case-insensitive phrase that ends the session when spoken"
    )

    session_timeout_s: Optional[float] = Field(
        default=None,
        description="Wall-clock bound on the whole session; None disables it",
        gt=0.0
    )

    on_turn_error: Literal["end", "skip"] = Field(
        default="end",
        description="What to do when the model or synthesis call fails during a turn"
    )

    print_transcripts: bool = Field(
        default=True,
        description="Print partial transcripts as they arrive"
    )

    # Computed properties (derived from other fields)
    @computed_field
    @property
    def frame_samples(self) -> int:
        """Number of audio samples per frame."""
        return int(self.sample_rate * self.frame_ms / 1000)

    @computed_field
    @property
    def listen_url(self) -> str:
        """Live recognition URL carrying the capture format and recognizer options."""
        params = {
            "model": self.stt_model,
            "language": self.stt_language,
            "encoding": "linear16",
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "punctuate": _bool_param(self.punctuate),
            "smart_format": _bool_param(self.smart_format),
            "interim_results": _bool_param(self.interim_results),
            "endpointing": self.endpointing_ms,
        }
        return f"{DEEPGRAM_LISTEN_URL}?{urlencode(params)}"

    @computed_field
    @property
    def speak_url(self) -> str:
        """Synthesis URL for linear16 audio at the configured output rate."""
        params = {
            "model": self.tts_model,
            "encoding": "linear16",
            "sample_rate": self.tts_sample_rate,
        }
        return f"{DEEPGRAM_SPEAK_URL}?{urlencode(params)}"

    @field_validator('termination_phrase')
    @classmethod
    def validate_termination_phrase(cls, v):
        """Ensure the termination phrase is not blank."""
        if not v.strip():
            raise ValueError("termination_phrase cannot be empty")
        return v.strip()

    @field_validator('system_prompt')
    @classmethod
    def validate_system_prompt(cls, v):
        """Ensure system prompt is not empty."""
        if not v.strip():
            raise ValueError("system_prompt cannot be empty")
        return v

    @field_validator('player_command')
    @classmethod
    def validate_player_command(cls, v):
        if not v:
            raise ValueError("player_command cannot be empty")
        return v

    def load_system_prompt(self) -> str:
        """Return the effective system prompt, reading system_prompt_path if set."""
        if self.system_prompt_path is not None:
            text = self.system_prompt_path.read_text(encoding="utf-8").strip()
            if not text:
                raise ValueError(f"System prompt file '{self.system_prompt_path}' is empty")
            return text
        return self.system_prompt.strip()

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides) -> "Config":
        """Build a configuration after loading a .env file into the environment.

        Keyword overrides win over environment values.
        """
        load_dotenv(env_file)
        env_values = {}
        if phrase := os.getenv("TERMINATION_PHRASE"):
            env_values["termination_phrase"] = phrase
        if timeout := os.getenv("SESSION_TIMEOUT_S"):
            env_values["session_timeout_s"] = float(timeout)
        env_values.update(overrides)
        return cls(**env_values)

    def model_dump_config(self) -> dict:
        """Return configuration as a dictionary with the API key masked."""
        data = self.model_dump()
        if data.get("deepgram_api_key"):
            data["deepgram_api_key"] = "***"
        return data


# Default configuration instance
default_config = Config()
