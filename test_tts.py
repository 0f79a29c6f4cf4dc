"""Tests for synthesis streaming into the playback process."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest

from voice_chat_loop import tts
from voice_chat_loop.errors import PlayerUnavailableError, TextToSpeechError
from voice_chat_loop.tts import DeepgramSpeaker


def audio_response(*chunks, fail_after=None):
    async def body():
        for index, chunk in enumerate(chunks):
            if fail_after is not None and index == fail_after:
                raise httpx.ReadError("connection reset mid-stream")
            yield chunk

    return httpx.Response(200, content=body())


def mock_client(handler):
    requests = []

    def record(request):
        requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(record)), requests


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", None])
async def test_empty_text_is_a_no_op(config, player_spawner, text):
    client, requests = mock_client(lambda request: audio_response(b"x"))
    speaker = DeepgramSpeaker(config, client=client)

    await speaker.speak(text)
    assert requests == []
    assert player_spawner == []


@pytest.mark.asyncio
async def test_missing_player_fails_before_any_request(config, player_spawner, monkeypatch):
    monkeypatch.setattr(tts.shutil, "which", lambda name: None)
    client, requests = mock_client(lambda request: audio_response(b"x"))
    speaker = DeepgramSpeaker(config, client=client)

    with pytest.raises(PlayerUnavailableError, match="ffplay not found"):
        await speaker.speak("4")
    assert requests == []
    assert player_spawner == []


@pytest.mark.asyncio
async def test_audio_streams_into_the_player_in_order(config, player_spawner):
    chunks = [b"RIFF....", b"\x00\x01" * 8, b"\x02\x03" * 8]
    client, requests = mock_client(lambda request: audio_response(*chunks))
    speaker = DeepgramSpeaker(config, client=client)

    await speaker.speak("4")

    [player] = player_spawner
    assert player.args[0] == "ffplay"
    assert player.args[-1] == "-"
    assert b"".join(player.stdin.chunks) == b"".join(chunks)
    assert player.stdin.closed
    assert not player.killed
    assert speaker.last_ttfb_ms is not None

    [request] = requests
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Token test-key"
    assert json.loads(request.content) == {"text": "4"}
    assert parse_qs(request.url.query.decode())["sample_rate"] == ["24000"]


@pytest.mark.asyncio
async def test_http_error_kills_the_player(config, player_spawner):
    client, _ = mock_client(lambda request: httpx.Response(401, json={"err_msg": "bad key"}))
    speaker = DeepgramSpeaker(config, client=client)

    with pytest.raises(TextToSpeechError):
        await speaker.speak("4")
    [player] = player_spawner
    assert player.killed
    assert player.stdin.chunks == []
    assert speaker.last_ttfb_ms is None


@pytest.mark.asyncio
async def test_mid_stream_failure_kills_the_player(config, player_spawner):
    client, _ = mock_client(lambda request: audio_response(b"first", b"second", fail_after=1))
    speaker = DeepgramSpeaker(config, client=client)

    with pytest.raises(TextToSpeechError, match="connection reset"):
        await speaker.speak("a longer reply")
    [player] = player_spawner
    assert player.killed
    assert player.stdin.chunks == [b"first"]


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(config):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204)))
    speaker = DeepgramSpeaker(config, client=client)
    await speaker.close()
    assert not client.is_closed
    await client.aclose()


@pytest.mark.asyncio
async def test_cancelled_playback_kills_and_reaps_the_player(config, player_spawner):
    player_spawner.keep_playing = True
    client, _ = mock_client(lambda request: audio_response(b"chunk-1", b"chunk-2"))
    speaker = DeepgramSpeaker(config, client=client)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(speaker.speak("a long story"), timeout=0.05)

    [player] = player_spawner
    assert player.stdin.closed
    assert player.killed
    assert player.returncode == -9
