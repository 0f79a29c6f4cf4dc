#!/usr/bin/env python3
"""
Text-to-Speech speakers for the voice chat loop.
"""

import asyncio
import shutil
import sys
import time
from typing import Optional

import httpx

from .config import default_config, Config
from .errors import PlayerUnavailableError, TextToSpeechError


class BaseSpeaker:
    """Base class for TTS speakers."""

    async def speak(self, text: Optional[str]):  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self):  # optional cleanup
        pass


class DeepgramSpeaker(BaseSpeaker):
    """Streams Deepgram synthesis straight into a playback process.

    Audio chunks are written to the player's stdin in arrival order; stdin
    is closed when the response ends so the player drains and exits.
    speak() returns once the player has exited.
    """

    def __init__(self, config: Optional[Config] = None, client: Optional[httpx.AsyncClient] = None):
        self.config = config or default_config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.config.request_timeout_s)
        self.last_ttfb_ms: Optional[int] = None

    def player_available(self) -> bool:
        return shutil.which(self.config.player_command[0]) is not None

    async def speak(self, text: Optional[str]):
        if not text:
            return
        if not self.player_available():
            raise PlayerUnavailableError(
                f"{self.config.player_command[0]} not found, necessary to stream audio."
            )

        player = await asyncio.create_subprocess_exec(
            *self.config.player_command,
            stdin=asyncio.subprocess.PIPE,
        )
        headers = {
            "Authorization": f"Token {self.config.deepgram_api_key}",
            "Content-Type": "application/json",
        }

        start_time = time.monotonic()
        self.last_ttfb_ms = None
        try:
            async with self.client.stream("POST", self.config.speak_url, headers=headers,
                                          json={"text": text}) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    if self.last_ttfb_ms is None:
                        self.last_ttfb_ms = int((time.monotonic() - start_time) * 1000)
                        print(f"TTS Time to First Byte (TTFB): {self.last_ttfb_ms}ms", flush=True)
                    player.stdin.write(chunk)
                    await player.stdin.drain()
            player.stdin.close()
            await player.stdin.wait_closed()
            returncode = await player.wait()
        except (httpx.HTTPError, ConnectionError) as e:
            await self._stop_player(player)
            raise TextToSpeechError(f"Error with TTS request: {e}") from e
        except asyncio.CancelledError:
            await self._stop_player(player)
            raise

        if returncode != 0:
            print(f"[TTS] Player exited with status {returncode}", file=sys.stderr)

    async def _stop_player(self, player):
        """Kill the player if it is still running and reap it."""
        if player.returncode is None:
            player.kill()
        await player.wait()

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


def create_speaker(config: Optional[Config] = None) -> BaseSpeaker:
    """Factory function to create the speaker for the configured provider."""
    return DeepgramSpeaker(config or default_config)
