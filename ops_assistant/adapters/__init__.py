"""
Adapter modules for the conversational turn engine.

This module contains adapters for:
- Intent classification and entity extraction
- Webhook dispatch to the automation service
- Conversation management
- Speech capture (Whisper) and speech playback (OpenAI TTS)
"""

from . import intent_extractor
from . import dispatch_gateway
from . import voice
from . import speech_recognizer
from . import tts_manager
from . import conversation_manager

__all__ = [
    'intent_extractor',
    'dispatch_gateway',
    'voice',
    'speech_recognizer',
    'tts_manager',
    'conversation_manager'
]
