"""Experimental live audio transcription over the Gemini Live API.

The browser streams little-endian float32 mono frames sampled at 16 kHz; each
frame is converted to PCM16 and forwarded. Input transcriptions coming back
from the session are handed to ``on_transcription_update``.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncContextManager, Awaitable, Callable, Optional

import numpy as np

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger(__name__)

LIVE_MIME_TYPE = "audio/pcm;rate=16000"

TranscriptionHandler = Callable[[str], Awaitable[None]]
ConnectFn = Callable[[str], AsyncContextManager[Any]]


def float32_to_pcm16(audio: np.ndarray) -> bytes:
    """Convert float32 samples in [-1.0, 1.0] to PCM16 bytes."""
    clipped = np.clip(audio.astype(np.float32), -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


def frame_to_pcm16(frame: bytes) -> bytes:
    return float32_to_pcm16(np.frombuffer(frame, dtype="<f4"))


def create_blob(frame: bytes):
    from google.genai import types

    return types.Blob(data=frame_to_pcm16(frame), mime_type=LIVE_MIME_TYPE)


def _default_connect(model: str) -> AsyncContextManager[Any]:
    from google import genai
    from google.genai import types

    if not settings.ai.gemini_api_key:
        raise RuntimeError(
            "Gemini API key not configured. Set GEMINI_API_KEY in your environment."
        )
    client = genai.Client(api_key=settings.ai.gemini_api_key)
    config = types.LiveConnectConfig(
        response_modalities=[types.Modality.AUDIO],
        input_audio_transcription=types.AudioTranscriptionConfig(),
    )
    return client.aio.live.connect(model=model, config=config)


class AudioTranscriber:
    """One live session; ``start`` then ``send_audio`` repeatedly, then ``stop``."""

    def __init__(
        self,
        on_transcription_update: TranscriptionHandler,
        *,
        connect: Optional[ConnectFn] = None,
        model: Optional[str] = None,
    ) -> None:
        self._on_update = on_transcription_update
        self._connect = connect or _default_connect
        self.model = model or settings.ai.live_model
        self._session_cm: Optional[AsyncContextManager[Any]] = None
        self._session: Any = None
        self._receiver: Optional[asyncio.Task[None]] = None

    @property
    def is_running(self) -> bool:
        return self._session is not None

    async def start(self) -> None:
        try:
            self._session_cm = self._connect(self.model)
            self._session = await self._session_cm.__aenter__()
            self._receiver = asyncio.create_task(self._receive_loop())
            logger.info("Live transcription session opened (%s)", self.model)
        except Exception:
            logger.exception("Failed to start live transcription session")
            await self.stop()
            raise

    async def send_audio(self, frame: bytes) -> None:
        if self._session is None:
            raise RuntimeError("Transcription session is not started")
        await self._session.send_realtime_input(audio=create_blob(frame))

    async def _receive_loop(self) -> None:
        try:
            # receive() ends at each turn boundary; an empty turn means the server closed
            while self._session is not None:
                received = 0
                async for message in self._session.receive():
                    received += 1
                    content = getattr(message, "server_content", None)
                    transcription = getattr(content, "input_transcription", None)
                    text = getattr(transcription, "text", None)
                    if text:
                        await self._on_update(text)
                if not received:
                    logger.info("Live transcription session closed by server")
                    return
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("Live transcription session error")

    async def stop(self) -> None:
        if self._receiver and not self._receiver.done():
            self._receiver.cancel()
            try:
                await self._receiver
            except asyncio.CancelledError:
                pass
        self._receiver = None
        if self._session_cm is not None and self._session is not None:
            try:
                await self._session_cm.__aexit__(None, None, None)
            except Exception:
                logger.exception("Error closing live transcription session")
            logger.info("Live transcription session closed")
        self._session_cm = None
        self._session = None
