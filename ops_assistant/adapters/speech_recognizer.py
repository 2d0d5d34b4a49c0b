import asyncio
import io
import logging
import wave
from typing import List, Optional

from openai import OpenAI

from ops_assistant.adapters.voice import UtteranceCallback
from ops_assistant.config.settings import AssistantSettings

logger = logging.getLogger(__name__)


class WhisperRecognizer:
    """Speech capture backed by OpenAI Whisper.

    Audio frames (16-bit mono PCM) pushed through ``feed_audio`` between
    ``start()`` and ``stop()`` form one utterance. Stopping transcribes the
    utterance in the background and hands the transcript to every registered
    utterance-end callback.
    """

    def __init__(self, openai_api_key: Optional[str] = None, model: str = "whisper-1",
                 language: str = "en", sample_rate: int = 16000,
                 openai_client: Optional[OpenAI] = None):
        if openai_client is None and openai_api_key:
            openai_client = OpenAI(api_key=openai_api_key)
        self.openai_client = openai_client

        self.model = model
        self.language = language
        self.sample_rate = sample_rate

        # Ignore utterances shorter than 100ms
        self.min_audio_bytes = sample_rate * 2 // 10

        self.is_capturing = False
        self._frames = bytearray()
        self._callbacks: List[UtteranceCallback] = []
        self._pending: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: AssistantSettings) -> 'WhisperRecognizer':
        return cls(
            openai_api_key=settings.OPENAI_API_KEY,
            model=settings.WHISPER_MODEL,
            language=settings.VOICE_LANGUAGE,
            sample_rate=settings.AUDIO_SAMPLE_RATE,
        )

    @property
    def is_supported(self) -> bool:
        return self.openai_client is not None

    def on_utterance_end(self, callback: UtteranceCallback) -> None:
        self._callbacks.append(callback)

    def start(self) -> None:
        self._frames.clear()
        self.is_capturing = True

    def feed_audio(self, chunk: bytes) -> None:
        """Append captured PCM audio to the current utterance"""
        if self.is_capturing and chunk:
            self._frames.extend(chunk)

    def stop(self) -> None:
        if not self.is_capturing:
            return
        self.is_capturing = False
        audio = bytes(self._frames)
        self._frames.clear()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("⚠️ No running event loop; dropping captured utterance")
            return
        self._pending = loop.create_task(self._finish_utterance(audio))

    async def wait_until_idle(self) -> None:
        """Wait for a pending transcription to deliver its transcript"""
        if self._pending is not None:
            await self._pending

    async def _finish_utterance(self, audio: bytes) -> None:
        transcript = await self.transcribe(audio)
        self._emit(transcript or "")

    def _emit(self, transcript: str) -> None:
        for callback in list(self._callbacks):
            try:
                callback(transcript)
            except Exception as e:
                logger.error(f"Utterance callback failed: {e}")

    async def transcribe(self, pcm_audio: bytes) -> Optional[str]:
        """Transcribe 16-bit mono PCM audio, returning None on failure"""
        if not self.is_supported or len(pcm_audio) < self.min_audio_bytes:
            return None

        try:
            start_time = asyncio.get_running_loop().time()
            wav_data = self._pcm_to_wav(pcm_audio)

            response = await asyncio.to_thread(
                self.openai_client.audio.transcriptions.create,
                model=self.model,
                file=("audio.wav", wav_data, "audio/wav"),
                language=self.language,
            )

            text = (response.text or "").strip()
            transcription_time = asyncio.get_running_loop().time() - start_time
            logger.info(f"OpenAI Whisper transcription completed in {transcription_time:.2f}s: '{text}'")
            return text

        except Exception as e:
            logger.error(f"OpenAI Whisper failed: {e}")
            return None

    def _pcm_to_wav(self, pcm_data: bytes) -> bytes:
        """Wrap raw PCM frames in a WAV container"""
        wav_buffer = io.BytesIO()
        with wave.open(wav_buffer, 'wb') as wav_file:
            wav_file.setnchannels(1)  # Mono
            wav_file.setsampwidth(2)  # 16-bit
            wav_file.setframerate(self.sample_rate)
            wav_file.writeframes(pcm_data)
        return wav_buffer.getvalue()
