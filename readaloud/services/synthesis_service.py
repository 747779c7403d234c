"""
音声合成サービス
単語や文をAzureの音声で読み上げる
"""
import asyncio
import logging

import azure.cognitiveservices.speech as speechsdk

from readaloud.config import SpeechSettings
from readaloud.exceptions import ConfigurationError, InvalidRequestError, SpeechSynthesisError

logger = logging.getLogger(__name__)


class SpeechSynthesisService:
    """Azure Text to Speechを使用するサービスクラス"""

    def __init__(self, settings: SpeechSettings) -> None:
        self.settings = settings

    def _create_synthesizer(self) -> speechsdk.SpeechSynthesizer:
        speech_config = speechsdk.SpeechConfig(
            subscription=self.settings.speech_key,
            region=self.settings.speech_region,
        )
        speech_config.speech_synthesis_voice_name = self.settings.voice_name
        # WAV形式（RIFFヘッダ付き）で受け取る
        speech_config.set_speech_synthesis_output_format(
            speechsdk.SpeechSynthesisOutputFormat.Riff16Khz16BitMonoPcm
        )
        return speechsdk.SpeechSynthesizer(speech_config=speech_config, audio_config=None)

    def _speak(self, text: str) -> bytes:
        synthesizer = self._create_synthesizer()
        result = synthesizer.speak_text_async(text).get()
        if result.reason != speechsdk.ResultReason.SynthesizingAudioCompleted:
            details = result.cancellation_details
            message = getattr(details, "error_details", "") or str(result.reason)
            raise SpeechSynthesisError(f"音声合成に失敗しました: {message}")
        return bytes(result.audio_data)

    async def synthesize(self, text: str) -> bytes:
        """
        テキストを音声に変換

        Args:
            text: 読み上げるテキスト

        Returns:
            WAV形式の音声データ

        Raises:
            ConfigurationError: 認証情報が設定されていない場合
            InvalidRequestError: テキストが空の場合
            SpeechSynthesisError: 合成がキャンセルされた場合
        """
        if not self.settings.is_configured:
            raise ConfigurationError("AZURE_SPEECH_KEYとAZURE_SPEECH_REGIONが設定されていません")
        if not text or not text.strip():
            raise InvalidRequestError("読み上げるテキストが空です")

        audio: bytes = await asyncio.to_thread(self._speak, text)
        logger.info("音声合成が完了しました: %s (%d bytes)", text, len(audio))
        return audio
