"""Shared fakes for the voice chat loop tests.

Nothing here touches the network, the microphone or a real player process.
"""

import asyncio
from typing import List, Optional

import pytest

from voice_chat_loop.config import Config
from voice_chat_loop.stt import TranscriptEvent, TranscriptEventKind


def partial(text: str) -> TranscriptEvent:
    return TranscriptEvent(TranscriptEventKind.PARTIAL, text=text, confidence=0.9)


def final(text: str) -> TranscriptEvent:
    return TranscriptEvent(TranscriptEventKind.FINAL, text=text, confidence=0.98)


class FakeSession:
    """Recognition session that replays scripted events.

    With hang=True the event stream blocks after the script until finish()
    or close() is called, then reports CLOSED.
    """

    def __init__(self, events: Optional[List[TranscriptEvent]] = None, hang: bool = False,
                 open_error: Optional[Exception] = None):
        self.script = list(events or [])
        self.hang = hang
        self.open_error = open_error
        self.sent: List[bytes] = []
        self.open_count = 0
        self.finish_count = 0
        self.close_count = 0
        self._released = asyncio.Event()

    async def open(self):
        self.open_count += 1
        if self.open_error is not None:
            raise self.open_error

    async def send_audio(self, frame: bytes):
        self.sent.append(frame)

    async def finish(self):
        self.finish_count += 1
        self._released.set()

    async def events(self):
        for event in self.script:
            await asyncio.sleep(0)
            yield event
        if self.hang:
            await self._released.wait()
        yield TranscriptEvent(TranscriptEventKind.CLOSED)

    async def close(self):
        self.close_count += 1
        self._released.set()


class SessionFactory:
    """Hands out prepared sessions in order, one per listen() call."""

    def __init__(self, *sessions: FakeSession):
        self.sessions = list(sessions)
        self.created: List[FakeSession] = []

    def __call__(self, config):
        session = self.sessions.pop(0) if self.sessions else FakeSession(hang=True)
        self.created.append(session)
        return session


class FakeMicrophone:
    """Microphone that yields prepared frames, then idles until stopped."""

    def __init__(self, frames: Optional[List[bytes]] = None, run_dry: bool = False):
        self.prepared = list(frames or [])
        self.run_dry = run_dry
        self.start_count = 0
        self.stop_count = 0
        self._stopped: Optional[asyncio.Event] = None

    async def start(self):
        self.start_count += 1
        self._stopped = asyncio.Event()

    async def stop(self):
        self.stop_count += 1
        if self._stopped is not None:
            self._stopped.set()

    async def frames(self):
        for frame in self.prepared:
            yield frame
        if not self.run_dry:
            await self._stopped.wait()


class FakeOllamaClient:
    """Stands in for ollama.AsyncClient; replies are taken in order."""

    def __init__(self, *replies: str, error: Optional[Exception] = None):
        self.replies = list(replies)
        self.error = error
        self.calls = []

    async def chat(self, model, messages, options=None):
        self.calls.append({"model": model, "messages": list(messages), "options": options})
        if self.error is not None:
            raise self.error
        return {"model": model, "message": {"role": "assistant", "content": self.replies.pop(0)}}


class FakeStdin:
    def __init__(self):
        self.chunks: List[bytes] = []
        self.closed = False

    def write(self, data: bytes):
        assert not self.closed, "write after close"
        self.chunks.append(data)

    async def drain(self):
        pass

    def close(self):
        self.closed = True

    async def wait_closed(self):
        pass


class FakePlayer:
    """Player process; with keep_playing=True, wait() blocks until kill()."""

    def __init__(self, args, keep_playing: bool = False):
        self.args = args
        self.keep_playing = keep_playing
        self.stdin = FakeStdin()
        self.killed = False
        self.returncode: Optional[int] = None
        self._exited = asyncio.Event()

    def kill(self):
        self.killed = True
        self.returncode = -9
        self._exited.set()

    async def wait(self) -> int:
        if self.keep_playing:
            await self._exited.wait()
        if self.returncode is None:
            self.returncode = 0
        return self.returncode


class PlayerSpawns(list):
    """Players created by the patched subprocess factory, in order."""

    keep_playing = False


class FakeListener:
    """Returns scripted utterances; an Exception in the script is raised instead."""

    def __init__(self, *script):
        self.script = list(script)
        self.calls = 0

    async def listen(self):
        self.calls += 1
        if not self.script:
            await asyncio.Event().wait()
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingLLM:
    def __init__(self, reply: str = "ok", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[str] = []

    async def process(self, text):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingSpeaker:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.spoken: List[str] = []
        self.closed = 0

    async def speak(self, text):
        self.spoken.append(text)
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed += 1


@pytest.fixture
def config(tmp_path):
    return Config(
        deepgram_api_key="test-key",
        ollama_host="http://ollama.test:11434",
        ollama_model="test-model",
        system_prompt="You are a test assistant.",
        system_prompt_path=None,
        print_transcripts=False,
    )


@pytest.fixture
def player_spawner(monkeypatch):
    """Replaces subprocess creation and the PATH lookup in the tts module."""
    from voice_chat_loop import tts

    players = PlayerSpawns()

    async def fake_exec(*args, **kwargs):
        player = FakePlayer(args, keep_playing=players.keep_playing)
        players.append(player)
        return player

    monkeypatch.setattr(tts.shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(tts.asyncio, "create_subprocess_exec", fake_exec)
    return players
