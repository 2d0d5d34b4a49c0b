import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from openai import OpenAI

from ops_assistant.config.settings import AssistantSettings

logger = logging.getLogger(__name__)

AudioPlayer = Callable[[bytes], Awaitable[None]]


class OpenAISynthesizer:
    """Speech playback backed by OpenAI TTS.

    ``speak`` replaces whatever is currently playing; ``cancel`` stops it.
    Rendered audio goes to an injected async ``player`` (speaker, websocket,
    ...). Failures are logged and never raised.
    """

    def __init__(self, player: Optional[AudioPlayer] = None, openai_api_key: Optional[str] = None,
                 model: str = "tts-1", voice: str = "alloy", speed: float = 1.0,
                 max_cache_size: int = 100, openai_client: Optional[OpenAI] = None):
        if openai_client is None and openai_api_key:
            openai_client = OpenAI(api_key=openai_api_key)
        self.openai_client = openai_client
        self.player = player

        # TTS Configuration
        self.tts_model = model
        self.tts_voice = voice
        self.tts_speed = speed

        # TTS cache
        self.tts_cache: Dict[str, bytes] = {}
        self.max_cache_size = max_cache_size

        self._speaking = False
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: AssistantSettings,
                      player: Optional[AudioPlayer] = None) -> 'OpenAISynthesizer':
        return cls(
            player=player,
            openai_api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_TTS_MODEL,
            voice=settings.OPENAI_TTS_VOICE,
            speed=settings.OPENAI_TTS_SPEED,
            max_cache_size=settings.TTS_CACHE_SIZE,
        )

    @property
    def is_supported(self) -> bool:
        return self.openai_client is not None and self.player is not None

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def speak(self, text: str) -> None:
        if not self.is_supported or not text.strip():
            return

        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("⚠️ No running event loop; skipping speech playback")
            return
        self._speaking = True
        self._task = loop.create_task(self._speak(text))

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("🔇 Speech playback cancelled")
        self._task = None
        self._speaking = False

    async def wait_until_idle(self) -> None:
        """Wait for the current playback to finish"""
        task = self._task
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _speak(self, text: str) -> None:
        try:
            audio_data = await self.synthesize(text)
            if audio_data:
                await self.player(audio_data)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Speech playback failed: {e}")
        finally:
            if self._task is asyncio.current_task():
                self._speaking = False

    async def synthesize(self, text: str) -> Optional[bytes]:
        """Generate TTS audio for text"""
        try:
            if not text.strip() or self.openai_client is None:
                return None

            if text in self.tts_cache:
                logger.info(f"🎵 Using cached TTS ({len(text)} chars)")
                return self.tts_cache[text]

            response = await asyncio.to_thread(
                self.openai_client.audio.speech.create,
                model=self.tts_model,
                voice=self.tts_voice,
                input=text,
                speed=self.tts_speed
            )
            audio_data = response.content

            if audio_data:
                self._add_to_cache(text, audio_data)
                logger.info(f"🎵 Generated TTS: {len(audio_data)} bytes")
            return audio_data

        except Exception as e:
            logger.error(f"TTS synthesis failed: {e}")
            return None

    def _add_to_cache(self, key: str, audio_data: bytes) -> None:
        """Add TTS audio to cache"""
        if self.max_cache_size <= 0:
            return
        if len(self.tts_cache) >= self.max_cache_size:
            # Remove oldest entry
            oldest_key = next(iter(self.tts_cache))
            del self.tts_cache[oldest_key]

        self.tts_cache[key] = audio_data

    def clear_cache(self) -> None:
        """Clear TTS cache"""
        self.tts_cache.clear()
        logger.info("🗑️ TTS cache cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        usage = 0.0
        if self.max_cache_size > 0:
            usage = (len(self.tts_cache) / self.max_cache_size) * 100
        return {
            'cache_size': len(self.tts_cache),
            'max_cache_size': self.max_cache_size,
            'cache_usage_percent': usage
        }
