#!/usr/bin/env python3
"""
Microphone capture and streaming speech-to-text for the voice chat loop.
"""

import asyncio
import contextlib
import enum
import json
import sys
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional

from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from .config import default_config, Config
from .errors import SpeechToTextError
from .transcript import TranscriptCollector


class TranscriptEventKind(enum.Enum):
    PARTIAL = "partial"
    FINAL = "final"
    CLOSED = "closed"
    ERROR = "error"


@dataclass
class TranscriptEvent:
    """One event from a recognition session.

    Only PARTIAL and FINAL carry text; ERROR carries the exception to raise.
    """
    kind: TranscriptEventKind
    text: str = ""
    confidence: float = 0.0
    error: Optional[Exception] = None


def parse_transcript_message(data: dict) -> Optional[TranscriptEvent]:
    """Turn one decoded Deepgram live message into a TranscriptEvent.

    Returns None for messages that carry no transcript (Metadata,
    SpeechStarted, UtteranceEnd, results without alternatives).
    """
    message_type = data.get("type")
    if message_type == "Error":
        description = data.get("description") or data.get("message") or "unknown error"
        return TranscriptEvent(
            TranscriptEventKind.ERROR,
            error=SpeechToTextError(f"Recognition error: {description}"),
        )
    if message_type != "Results":
        return None
    channel = data.get("channel")
    if not channel:
        return None
    alternatives = channel.get("alternatives")
    if not alternatives:
        return None
    best = alternatives[0]
    kind = TranscriptEventKind.FINAL if data.get("is_final") else TranscriptEventKind.PARTIAL
    return TranscriptEvent(
        kind,
        text=best.get("transcript", ""),
        confidence=best.get("confidence", 0.0),
    )


class MicrophoneStream:
    """Captures 16-bit mono microphone frames into an asyncio queue.

    The sounddevice callback runs on the PortAudio thread, so frames are
    handed to the event loop with call_soon_threadsafe.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or default_config
        self.stream = None
        self.overflow_count = 0
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def start(self):
        """Open the input device and begin queueing frames."""
        if self.stream is not None:
            return  # Already recording
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:  # OSError when PortAudio is missing
            raise SpeechToTextError(f"Could not load the audio library: {e}") from e

        self.overflow_count = 0
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

        def callback(indata, frames, time_info, status):  # sounddevice RawInputStream callback
            if status.input_overflow:
                self.overflow_count += 1  # We tolerate overflow; frames still usable.
            self._loop.call_soon_threadsafe(self._queue.put_nowait, bytes(indata))

        try:
            stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                blocksize=self.config.frame_samples,
                channels=self.config.channels,
                dtype='int16',
                callback=callback,
            )
            stream.start()
        except (sd.PortAudioError, OSError) as e:
            raise SpeechToTextError(f"Could not open microphone: {e}") from e
        self.stream = stream

    async def stop(self):
        """Stop capture and end the frame iterator. Safe to call repeatedly."""
        if self.stream is None:
            return
        stream, self.stream = self.stream, None
        stream.stop()
        stream.close()
        self._queue.put_nowait(None)
        if self.overflow_count:
            print(f"[Mic] {self.overflow_count} input overflow(s) during capture", file=sys.stderr)

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield captured frames until the stream is stopped."""
        if self._queue is None:
            return
        while True:
            frame = await self._queue.get()
            if frame is None:
                break
            yield frame


class DeepgramLiveSession:
    """One Deepgram live recognition socket.

    open() -> send_audio()* -> events() -> close(). Closing after the socket
    has been asked to finish is reported as CLOSED; any other closure is an
    ERROR event.
    """

    def __init__(self, config: Optional[Config] = None, url: Optional[str] = None):
        self.config = config or default_config
        self.url = url or self.config.listen_url
        self._ws = None
        self._closing = False
        self._closed = False

    async def open(self):
        headers = {"Authorization": f"Token {self.config.deepgram_api_key}"}
        try:
            self._ws = await connect(
                self.url,
                additional_headers=headers,
                open_timeout=self.config.request_timeout_s,
            )
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise SpeechToTextError(f"Could not open recognition session: {e}") from e

    async def send_audio(self, frame: bytes):
        await self._ws.send(frame)

    async def finish(self):
        """Ask the provider to flush pending results and close the socket."""
        if self._ws is None or self._closing:
            return
        self._closing = True
        with contextlib.suppress(ConnectionClosed):
            await self._ws.send(json.dumps({"type": "CloseStream"}))

    async def events(self) -> AsyncIterator[TranscriptEvent]:
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    continue
                try:
                    data = json.loads(message)
                except json.JSONDecodeError:
                    print(f"[STT] Ignoring malformed message: {message[:80]!r}", file=sys.stderr)
                    continue
                event = parse_transcript_message(data)
                if event is not None:
                    yield event
        except ConnectionClosed as e:
            if not self._closing:
                yield TranscriptEvent(
                    TranscriptEventKind.ERROR,
                    error=SpeechToTextError(f"Recognition socket closed unexpectedly: {e}"),
                )
                return
        if self._closing:
            yield TranscriptEvent(TranscriptEventKind.CLOSED)
        else:
            yield TranscriptEvent(
                TranscriptEventKind.ERROR,
                error=SpeechToTextError("Recognition socket closed by the provider"),
            )

    async def close(self):
        """Close the socket. Safe to call repeatedly."""
        if self._ws is None or self._closed:
            return
        self._closed = True
        await self.finish()
        await self._ws.close()
        print("WebSocket closed", flush=True)


class UtteranceListener:
    """Acquires exactly one utterance per call to listen().

    Each call opens a fresh recognition session, feeds it microphone audio,
    accumulates fragments until a final fragment closes a non-empty
    utterance, then stops the microphone and closes the session. Both
    releases happen on every exit path, including cancellation.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        microphone: Optional[MicrophoneStream] = None,
        collector: Optional[TranscriptCollector] = None,
        session_factory: Optional[Callable[[Config], DeepgramLiveSession]] = None,
    ):
        self.config = config or default_config
        self.microphone = microphone or MicrophoneStream(self.config)
        self.collector = collector or TranscriptCollector()
        self.session_factory = session_factory or DeepgramLiveSession

    async def listen(self) -> Optional[str]:
        """Return the next finalized utterance, or None if the session closed without one.

        Raises SpeechToTextError when the session cannot be opened, fails in
        flight, or the microphone fails.
        """
        session = self.session_factory(self.config)
        self.collector.reset()
        try:
            await session.open()
            print("🎤 Listening…", flush=True)
            await self.microphone.start()
            feeder = asyncio.create_task(self._feed_audio(session))
            try:
                return await self._await_utterance(session, feeder)
            finally:
                if not feeder.done():
                    feeder.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await feeder
        finally:
            await self.microphone.stop()
            await session.close()

    async def _feed_audio(self, session):
        """Forward microphone frames until capture stops or the socket goes away."""
        async for frame in self.microphone.frames():
            try:
                await session.send_audio(frame)
            except ConnectionClosed:
                return  # The event stream reports why the socket closed.

    async def _await_utterance(self, session, feeder: asyncio.Task) -> Optional[str]:
        consumer = asyncio.create_task(self._collect_utterance(session))
        try:
            done, _ = await asyncio.wait({consumer, feeder}, return_when=asyncio.FIRST_COMPLETED)
            if consumer not in done:
                error = feeder.exception()
                if error is not None:
                    raise SpeechToTextError(f"Microphone capture failed: {error}") from error
                # Audio ran out; let the provider flush what it has and close.
                await session.finish()
            return await consumer
        finally:
            if not consumer.done():
                consumer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await consumer

    async def _collect_utterance(self, session) -> Optional[str]:
        async for event in session.events():
            if event.kind is TranscriptEventKind.PARTIAL:
                self.collector.add_fragment(event.text)
                if self.config.print_transcripts and event.text:
                    print(f"… {self.collector.current_text()}", flush=True)
            elif event.kind is TranscriptEventKind.FINAL:
                self.collector.add_fragment(event.text)
                utterance = self.collector.consume()
                if utterance:
                    print(f"Human: {utterance}", flush=True)
                    return utterance
            elif event.kind is TranscriptEventKind.ERROR:
                raise event.error
            elif event.kind is TranscriptEventKind.CLOSED:
                return None
        return None
