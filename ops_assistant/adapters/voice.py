"""
Voice capture and playback interfaces.

The engine only talks to these two narrow protocols. Capture and playback
share one audio device, so the AudioCoordinator stops one before starting
the other. Platform failures are logged and swallowed; text output always
remains available.
"""

import logging
from typing import Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

UtteranceCallback = Callable[[str], None]


@runtime_checkable
class Recognizer(Protocol):
    """Speech capture service"""

    @property
    def is_supported(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def on_utterance_end(self, callback: UtteranceCallback) -> None: ...


@runtime_checkable
class Synthesizer(Protocol):
    """Speech playback service"""

    @property
    def is_supported(self) -> bool: ...

    @property
    def is_speaking(self) -> bool: ...

    def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class AudioCoordinator:
    """Keeps speech capture and speech playback mutually exclusive"""

    def __init__(self, recognizer: Optional[Recognizer] = None,
                 synthesizer: Optional[Synthesizer] = None):
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.is_listening = False

    @property
    def can_listen(self) -> bool:
        return self._supported(self.recognizer)

    @property
    def can_speak(self) -> bool:
        return self._supported(self.synthesizer)

    @property
    def is_speaking(self) -> bool:
        if not self.can_speak:
            return False
        try:
            return bool(self.synthesizer.is_speaking)
        except Exception as e:
            logger.debug(f"Speaking state unavailable: {e}")
            return False

    @staticmethod
    def _supported(service) -> bool:
        if service is None:
            return False
        try:
            return bool(service.is_supported)
        except Exception as e:
            logger.debug(f"Capability check failed for {type(service).__name__}: {e}")
            return False

    def start_listening(self) -> bool:
        """Start capture, stopping playback first. Returns False when unavailable."""
        if not self.can_listen:
            logger.info("🎙️ Voice recognition is not supported; text input is still available")
            return False
        if self.is_listening:
            return True

        self.stop_speaking()
        try:
            self.recognizer.start()
        except Exception as e:
            logger.warning(f"⚠️ Failed to start voice capture: {e}")
            return False

        self.is_listening = True
        logger.info("🎙️ Voice capture started")
        return True

    def capture_ended(self) -> None:
        """Record that the recognizer finished an utterance on its own"""
        self.is_listening = False

    def stop_listening(self) -> None:
        if not self.is_listening:
            return
        # Cleared first: stopping may deliver the utterance synchronously
        self.is_listening = False
        try:
            self.recognizer.stop()
            logger.info("🎙️ Voice capture stopped")
        except Exception as e:
            logger.warning(f"⚠️ Failed to stop voice capture: {e}")

    def speak(self, text: str) -> bool:
        """Play text, stopping capture first. Returns False when nothing was played."""
        if not text or not text.strip() or not self.can_speak:
            return False

        self.stop_listening()
        try:
            self.synthesizer.speak(text)
            return True
        except Exception as e:
            logger.debug(f"Speech playback failed: {e}")
            return False

    def stop_speaking(self) -> None:
        if not self.can_speak:
            return
        try:
            self.synthesizer.cancel()
        except Exception as e:
            logger.debug(f"Speech cancel failed: {e}")
