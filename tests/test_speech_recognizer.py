import pytest
from unittest.mock import Mock
from ops_assistant.adapters.speech_recognizer import WhisperRecognizer
from ops_assistant.config.settings import load_settings


class TestWhisperRecognizer:
    """Unit tests for WhisperRecognizer module"""

    @pytest.fixture
    def openai_client(self):
        """Create mock OpenAI client"""
        client = Mock()
        client.audio.transcriptions.create.return_value = Mock(text="  What's my schedule today?  ")
        return client

    @pytest.fixture
    def recognizer(self, openai_client):
        """Create WhisperRecognizer instance for testing"""
        return WhisperRecognizer(openai_client=openai_client, sample_rate=8000)

    @pytest.fixture
    def speech_audio(self):
        """One second of 16-bit silence at 8kHz"""
        return b'\x00\x00' * 8000

    def test_initialization(self, recognizer):
        """Test WhisperRecognizer initialization"""
        assert recognizer.model == "whisper-1"
        assert recognizer.language == "en"
        assert recognizer.min_audio_bytes == 1600
        assert recognizer.is_capturing is False
        assert recognizer.is_supported is True

    def test_unsupported_without_credentials(self):
        """Test the recognizer reports unsupported without an API key"""
        assert WhisperRecognizer().is_supported is False

    def test_from_settings(self):
        """Test construction from settings"""
        settings = load_settings(OPENAI_API_KEY="test_key", WHISPER_MODEL="whisper-2",
                                 VOICE_LANGUAGE="en", AUDIO_SAMPLE_RATE=24000)
        recognizer = WhisperRecognizer.from_settings(settings)
        assert recognizer.is_supported is True
        assert recognizer.model == "whisper-2"
        assert recognizer.sample_rate == 24000

    def test_pcm_to_wav(self, recognizer, speech_audio):
        """Test PCM to WAV wrapping"""
        wav_data = recognizer._pcm_to_wav(speech_audio)
        assert wav_data.startswith(b'RIFF')
        assert b'WAVE' in wav_data
        assert b'data' in wav_data

    def test_feed_audio_ignored_when_idle(self, recognizer, speech_audio):
        """Test audio outside a capture session is dropped"""
        recognizer.feed_audio(speech_audio)
        assert len(recognizer._frames) == 0

    @pytest.mark.asyncio
    async def test_utterance_delivered_to_callbacks(self, recognizer, openai_client, speech_audio):
        """Test stop transcribes the utterance and notifies callbacks"""
        transcripts = []
        recognizer.on_utterance_end(transcripts.append)

        recognizer.start()
        recognizer.feed_audio(speech_audio)
        recognizer.stop()
        await recognizer.wait_until_idle()

        assert transcripts == ["What's my schedule today?"]
        assert recognizer.is_capturing is False
        openai_client.audio.transcriptions.create.assert_called_once()
        kwargs = openai_client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"][0] == "audio.wav"

    @pytest.mark.asyncio
    async def test_short_utterance_skipped(self, recognizer, openai_client):
        """Test very short audio is not sent for transcription"""
        transcripts = []
        recognizer.on_utterance_end(transcripts.append)

        recognizer.start()
        recognizer.feed_audio(b'\x00\x00' * 10)
        recognizer.stop()
        await recognizer.wait_until_idle()

        assert transcripts == [""]
        openai_client.audio.transcriptions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_transcription_failure(self, recognizer, openai_client, speech_audio):
        """Test API errors produce an empty transcript instead of raising"""
        openai_client.audio.transcriptions.create.side_effect = Exception("API error")
        transcripts = []
        recognizer.on_utterance_end(transcripts.append)

        recognizer.start()
        recognizer.feed_audio(speech_audio)
        recognizer.stop()
        await recognizer.wait_until_idle()

        assert transcripts == [""]

    @pytest.mark.asyncio
    async def test_callback_failure_isolated(self, recognizer, speech_audio):
        """Test one failing callback does not block the others"""
        transcripts = []

        def broken(text):
            raise RuntimeError("listener crashed")

        recognizer.on_utterance_end(broken)
        recognizer.on_utterance_end(transcripts.append)

        recognizer.start()
        recognizer.feed_audio(speech_audio)
        recognizer.stop()
        await recognizer.wait_until_idle()

        assert transcripts == ["What's my schedule today?"]

    def test_stop_without_start(self, recognizer):
        """Test stopping an idle recognizer is a no-op"""
        recognizer.stop()
        assert recognizer._pending is None
