"""
SpeechSynthesisServiceのテスト
"""
from types import SimpleNamespace
from unittest.mock import Mock, patch

import azure.cognitiveservices.speech as speechsdk
import pytest

from readaloud.config import SpeechSettings
from readaloud.exceptions import ConfigurationError, InvalidRequestError, SpeechSynthesisError
from readaloud.services.synthesis_service import SpeechSynthesisService


class TestSpeechSynthesisService:
    """SpeechSynthesisServiceのテストクラス"""

    @pytest.fixture
    def synthesis_service(self):
        """SpeechSynthesisServiceのインスタンスを作成"""
        return SpeechSynthesisService(SpeechSettings(speech_key="test_key", speech_region="test_region"))

    @staticmethod
    def _synthesizer(result):
        synthesizer = Mock()
        synthesizer.speak_text_async.return_value.get.return_value = result
        return synthesizer

    @pytest.mark.asyncio
    async def test_synthesize_success(self, synthesis_service):
        """合成した音声データを返す"""
        result = SimpleNamespace(
            reason=speechsdk.ResultReason.SynthesizingAudioCompleted, audio_data=b"RIFFdata"
        )
        synthesizer = self._synthesizer(result)

        with patch.object(synthesis_service, "_create_synthesizer", return_value=synthesizer):
            audio = await synthesis_service.synthesize("cat")

        assert audio == b"RIFFdata"
        synthesizer.speak_text_async.assert_called_once_with("cat")

    @pytest.mark.asyncio
    async def test_synthesize_canceled(self, synthesis_service):
        """合成がキャンセルされた場合はSpeechSynthesisError"""
        result = SimpleNamespace(
            reason=speechsdk.ResultReason.Canceled,
            cancellation_details=SimpleNamespace(error_details="voice not found"),
        )

        with patch.object(
            synthesis_service, "_create_synthesizer", return_value=self._synthesizer(result)
        ):
            with pytest.raises(SpeechSynthesisError, match="voice not found"):
                await synthesis_service.synthesize("cat")

    @pytest.mark.asyncio
    async def test_synthesize_not_configured(self):
        """認証情報がない場合はConfigurationError"""
        service = SpeechSynthesisService(SpeechSettings(speech_key=""))

        with patch.object(service, "_create_synthesizer") as mock_create:
            with pytest.raises(ConfigurationError):
                await service.synthesize("cat")

        mock_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_synthesize_empty_text(self, synthesis_service):
        """空のテキストはInvalidRequestError"""
        with pytest.raises(InvalidRequestError):
            await synthesis_service.synthesize("  ")

    def test_default_voice(self, synthesis_service):
        """既定の音声はen-US-JennyNeural"""
        assert synthesis_service.settings.voice_name == "en-US-JennyNeural"
