import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Set, Union

from ops_assistant.adapters.dispatch_gateway import ERROR_TIMEOUT, DispatchGateway
from ops_assistant.adapters.intent_extractor import classify_intent
from ops_assistant.adapters.voice import AudioCoordinator, Recognizer, Synthesizer
from ops_assistant.core.ids import IdGenerator, new_message_id
from ops_assistant.core.response_generator import format_success_response
from ops_assistant.models import (
    DispatchResult,
    IntentClassification,
    Message,
    MessageRole,
    TurnSource,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Processing your request..."
TIMEOUT_TEXT = (
    "This is taking longer than expected. Your request may still be completing, "
    "so please check your schedule before trying again."
)
UNEXPECTED_ERROR_TEXT = "I'm sorry, I encountered an error processing your request. Please try again."


class TurnState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_RESULT = "awaiting_result"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def failure_text(result: DispatchResult) -> str:
    """Map a failed dispatch to the assistant's reply"""
    if result.error == ERROR_TIMEOUT:
        return TIMEOUT_TEXT
    detail = (result.message or "").strip().rstrip(".") or "Failed to process your request"
    return f"I encountered an issue: {detail}. Please try again or rephrase your request."


class ConversationOrchestrator:
    """Owns the transcript and runs one turn at a time.

    A turn appends the user message and a placeholder, classifies and
    dispatches the utterance, then swaps the placeholder for exactly one
    assistant message. Failures of any kind become assistant text; nothing
    is raised to the caller.
    """

    def __init__(self, gateway: DispatchGateway,
                 recognizer: Optional[Recognizer] = None,
                 synthesizer: Optional[Synthesizer] = None,
                 id_generator: Optional[IdGenerator] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 classifier: Callable[[str], IntentClassification] = classify_intent,
                 formatter: Callable[[DispatchResult], str] = format_success_response,
                 voice_enabled: bool = False):
        self.gateway = gateway
        self.audio = AudioCoordinator(recognizer, synthesizer)
        self.id_generator = id_generator or new_message_id
        self.clock = clock or _utcnow
        self.classifier = classifier
        self.formatter = formatter
        self.voice_enabled = voice_enabled

        self.state = TurnState.IDLE
        self.pending_transcript = ""
        self._messages: List[Message] = []
        self._turn_counter = 0
        self._active_turn: Optional[int] = None
        self._voice_tasks: Set[asyncio.Task] = set()

        if recognizer is not None:
            recognizer.on_utterance_end(self._handle_utterance_end)

    # ----- transcript -----

    @property
    def messages(self) -> List[Message]:
        """Snapshot of the transcript in insertion order"""
        return list(self._messages)

    @property
    def is_processing(self) -> bool:
        return self._active_turn is not None

    def _new_message(self, role: MessageRole, content: str, structured_data: Any = None) -> Message:
        return Message(
            id=self.id_generator(),
            role=role,
            content=content,
            timestamp=self.clock(),
            structured_data=structured_data,
        )

    def _append(self, message: Message) -> Message:
        self._messages.append(message)
        return message

    def _remove(self, message_id: str) -> None:
        self._messages = [m for m in self._messages if m.id != message_id]

    def clear_transcript(self) -> None:
        """Drop every message and reset the guard; an in-flight turn keeps running"""
        count = len(self._messages)
        self._messages = []
        self._active_turn = None
        self.state = TurnState.IDLE
        logger.info(f"🗑️ Transcript cleared ({count} messages)")

    # ----- turns -----

    async def submit(self, text: str,
                     source: Union[TurnSource, str] = TurnSource.CHAT) -> Optional[Message]:
        """
        Run one turn for the given utterance

        Returns:
            The final assistant message, or None when the submission was
            ignored (empty input, an unknown source or a turn already in flight)
        """
        utterance = (text or "").strip()
        if not utterance:
            return None
        try:
            source = TurnSource(source)
        except ValueError:
            logger.warning(f"⚠️ Unknown turn source {source!r}; ignoring '{utterance[:40]}'")
            return None
        if self.is_processing:
            logger.info(f"⏳ Turn already in flight; ignoring '{utterance[:40]}'")
            return None

        self._turn_counter += 1
        turn_id = self._turn_counter
        self._active_turn = turn_id
        self.state = TurnState.SUBMITTING

        self._append(self._new_message(MessageRole.USER, utterance, {"source": source.value}))
        placeholder = self._append(self._new_message(MessageRole.SYSTEM, PLACEHOLDER_TEXT))

        try:
            reply, data, final_state = await self._run_turn(turn_id, utterance)

            self._remove(placeholder.id)
            final = self._append(self._new_message(MessageRole.ASSISTANT, reply, data))
            self._set_state(turn_id, final_state)

            if self.voice_enabled:
                self.audio.speak(reply)
            return final
        finally:
            # Also reached when the turn itself is cancelled
            self._remove(placeholder.id)
            if self._active_turn == turn_id:
                self._active_turn = None
                self.state = TurnState.IDLE

    async def _run_turn(self, turn_id: int, utterance: str):
        """Classify and dispatch; returns (reply text, structured data, final state)"""
        try:
            classification = self.classifier(utterance)
            logger.info(
                f"🎯 Turn {turn_id}: {classification.category.value} "
                f"(confidence {classification.confidence:.2f})"
            )

            self._set_state(turn_id, TurnState.AWAITING_RESULT)
            result = await self.gateway.dispatch(classification, utterance)
        except Exception as e:
            logger.error(f"❌ Turn {turn_id} failed: {type(e).__name__}: {e}")
            return UNEXPECTED_ERROR_TEXT, None, TurnState.FAILED

        if not result.success:
            return failure_text(result), None, TurnState.FAILED

        try:
            return self.formatter(result), result.data, TurnState.COMPLETED
        except Exception as e:
            logger.warning(f"⚠️ Formatting failed for turn {turn_id}: {e}")
            return result.message, result.data, TurnState.COMPLETED

    def _set_state(self, turn_id: int, state: TurnState) -> None:
        # A cleared transcript hands the guard to the next turn
        if self._active_turn == turn_id:
            self.state = state

    # ----- voice -----

    @property
    def voice_input_supported(self) -> bool:
        return self.audio.can_listen

    @property
    def is_listening(self) -> bool:
        return self.audio.is_listening

    @property
    def is_speaking(self) -> bool:
        return self.audio.is_speaking

    def set_voice_enabled(self, enabled: bool) -> None:
        """Turn spoken replies on or off; turning off stops playback immediately"""
        if not enabled:
            self.audio.stop_speaking()
        self.voice_enabled = enabled
        logger.info(f"🔊 Voice replies {'enabled' if enabled else 'disabled'}")

    def toggle_voice(self) -> bool:
        self.set_voice_enabled(not self.voice_enabled)
        return self.voice_enabled

    def start_listening(self) -> bool:
        self.pending_transcript = ""
        return self.audio.start_listening()

    def stop_listening(self) -> None:
        self.audio.stop_listening()

    def toggle_listening(self) -> bool:
        """Start or stop voice capture; returns whether capture is now active"""
        if self.audio.is_listening:
            self.audio.stop_listening()
        else:
            self.start_listening()
        return self.audio.is_listening

    def _handle_utterance_end(self, transcript: str) -> None:
        self.audio.capture_ended()
        self.pending_transcript = (transcript or "").strip()
        if not self.pending_transcript:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("⚠️ No running event loop; voice transcript not submitted")
            return
        task = loop.create_task(self._submit_voice_turn())
        self._voice_tasks.add(task)
        task.add_done_callback(self._voice_tasks.discard)

    async def _submit_voice_turn(self) -> Optional[Message]:
        transcript = self.pending_transcript
        self.pending_transcript = ""
        return await self.submit(transcript, source=TurnSource.VOICE)

    async def wait_for_voice_turns(self) -> None:
        """Wait until every submitted voice transcript has finished its turn"""
        while self._voice_tasks:
            await asyncio.gather(*list(self._voice_tasks))

    async def close(self) -> None:
        self.audio.stop_listening()
        self.audio.stop_speaking()
        await self.gateway.close()
