"""
Engine wiring.

Builds a ready-to-use ConversationOrchestrator from settings. Speech adapters
default to the OpenAI-backed ones when an API key is configured; callers can
inject their own Recognizer/Synthesizer (or fakes) instead.
"""

import logging
from typing import Optional

import httpx

from ops_assistant.adapters.conversation_manager import ConversationOrchestrator
from ops_assistant.adapters.dispatch_gateway import DispatchGateway
from ops_assistant.adapters.speech_recognizer import WhisperRecognizer
from ops_assistant.adapters.tts_manager import AudioPlayer, OpenAISynthesizer
from ops_assistant.adapters.voice import Recognizer, Synthesizer
from ops_assistant.config.settings import AssistantSettings, load_settings
from ops_assistant.logging_conf import configure_logging

logger = logging.getLogger(__name__)


def create_orchestrator(settings: Optional[AssistantSettings] = None,
                        recognizer: Optional[Recognizer] = None,
                        synthesizer: Optional[Synthesizer] = None,
                        player: Optional[AudioPlayer] = None,
                        http_client: Optional[httpx.AsyncClient] = None,
                        setup_logging: bool = False) -> ConversationOrchestrator:
    """
    Create an orchestrator wired to the configured webhook

    Args:
        settings: application settings; loaded from the environment when omitted
        recognizer: speech capture service, defaults to Whisper when configured
        synthesizer: speech playback service, defaults to OpenAI TTS when a
            player is given and an API key is configured
        player: async callable that plays rendered TTS audio
        http_client: shared HTTP client for the gateway
        setup_logging: install the root log handler from settings

    Raises:
        ConfigurationError: WEBHOOK_URL is not configured
    """
    settings = settings or load_settings()
    if setup_logging:
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    gateway = DispatchGateway.from_settings(settings, http_client=http_client)

    if recognizer is None and settings.OPENAI_API_KEY:
        recognizer = WhisperRecognizer.from_settings(settings)
    if synthesizer is None and settings.OPENAI_API_KEY and player is not None:
        synthesizer = OpenAISynthesizer.from_settings(settings, player=player)

    logger.info(
        f"🤖 Assistant ready (webhook={settings.WEBHOOK_URL}, "
        f"voice_in={recognizer is not None}, voice_out={synthesizer is not None})"
    )
    return ConversationOrchestrator(gateway, recognizer=recognizer, synthesizer=synthesizer)
