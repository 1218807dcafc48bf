"""Tests for PCM16 conversion and the live transcription session wrapper."""

import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace

import numpy as np
import pytest

from app.modules.ai.transcription import (
    LIVE_MIME_TYPE,
    AudioTranscriber,
    create_blob,
    float32_to_pcm16,
    frame_to_pcm16,
)


def transcript(text: str):
    return SimpleNamespace(server_content=SimpleNamespace(input_transcription=SimpleNamespace(text=text)))


class FakeSession:
    def __init__(self, messages):
        self.pending = list(messages)
        self.sent = []

    async def send_realtime_input(self, *, audio):
        self.sent.append(audio)

    async def receive(self):
        while self.pending:
            yield self.pending.pop(0)
        await asyncio.sleep(0.005)


class FakeConnect:
    def __init__(self, session):
        self.session = session
        self.models = []
        self.closed = False

    def __call__(self, model):
        self.models.append(model)

        @asynccontextmanager
        async def cm():
            try:
                yield self.session
            finally:
                self.closed = True

        return cm()


class TestEncoding:
    def test_scales_and_clips(self):
        pcm = float32_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0], dtype=np.float32))
        assert np.frombuffer(pcm, dtype="<i2").tolist() == [0, 32767, -32767, 32767]

    def test_frame_is_little_endian_float32(self):
        frame = np.array([0.5], dtype="<f4").tobytes()
        assert np.frombuffer(frame_to_pcm16(frame), dtype="<i2").tolist() == [16383]

    def test_blob(self):
        blob = create_blob(np.zeros(4, dtype="<f4").tobytes())
        assert blob.mime_type == LIVE_MIME_TYPE
        assert blob.data == b"\x00" * 8


class TestAudioTranscriber:
    async def test_forwards_audio_and_transcriptions(self):
        updates: list[str] = []

        async def on_update(text: str) -> None:
            updates.append(text)

        session = FakeSession([transcript("hello"), SimpleNamespace(server_content=None), transcript("world")])
        connect = FakeConnect(session)
        transcriber = AudioTranscriber(on_update, connect=connect, model="live-test")

        await transcriber.start()
        assert transcriber.is_running
        await transcriber.send_audio(np.zeros(2, dtype="<f4").tobytes())
        for _ in range(100):
            if len(updates) == 2:
                break
            await asyncio.sleep(0.005)
        await transcriber.stop()

        assert updates == ["hello", "world"]
        assert connect.models == ["live-test"]
        assert len(session.sent) == 1
        assert connect.closed
        assert not transcriber.is_running

    async def test_receive_loop_ends_when_server_closes(self):
        calls = 0

        class ClosedSession(FakeSession):
            async def receive(self):
                nonlocal calls
                calls += 1
                for message in ():
                    yield message

        async def on_update(text: str) -> None:
            pass

        transcriber = AudioTranscriber(on_update, connect=FakeConnect(ClosedSession([])))
        await transcriber.start()
        await asyncio.sleep(0.01)
        assert calls == 1
        await transcriber.stop()
        assert not transcriber.is_running

    async def test_send_before_start(self):
        async def on_update(text: str) -> None:
            pass

        transcriber = AudioTranscriber(on_update, connect=FakeConnect(FakeSession([])))
        with pytest.raises(RuntimeError):
            await transcriber.send_audio(b"\x00\x00\x00\x00")

    async def test_failed_connect_propagates(self):
        async def on_update(text: str) -> None:
            pass

        def broken(model):
            raise ConnectionError("no network")

        transcriber = AudioTranscriber(on_update, connect=broken)
        with pytest.raises(ConnectionError):
            await transcriber.start()
        assert not transcriber.is_running
