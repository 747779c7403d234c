"""
API接続チェックサービス
評価の前にAzure Speech Serviceの認証情報を検証する
"""
import asyncio
import logging
from typing import Dict

import azure.cognitiveservices.speech as speechsdk

from readaloud.config import SpeechSettings
from readaloud.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

# 認証確認用に合成する最小のテキスト
PROBE_TEXT = "test"


class SpeechCredentialGate:
    """Azure Speech Serviceの認証情報を事前に検証するクラス"""

    def __init__(self, settings: SpeechSettings) -> None:
        """
        初期化処理

        Args:
            settings: Azure Speech Serviceの設定
        """
        self.settings = settings

    def ensure_configured(self) -> None:
        """
        キーとリージョンが設定されているかをローカルで確認（ネットワーク呼び出しなし）

        Raises:
            ConfigurationError: キーまたはリージョンが空の場合
        """
        if not self.settings.is_configured:
            raise ConfigurationError("AZURE_SPEECH_KEYとAZURE_SPEECH_REGIONが設定されていません")

    def _create_synthesizer(self) -> speechsdk.SpeechSynthesizer:
        speech_config = speechsdk.SpeechConfig(
            subscription=self.settings.speech_key,
            region=self.settings.speech_region,
        )
        # 合成した音声はスピーカーに出さず破棄する
        return speechsdk.SpeechSynthesizer(speech_config=speech_config, audio_config=None)

    def _probe(self) -> None:
        synthesizer = self._create_synthesizer()
        result = synthesizer.speak_text_async(PROBE_TEXT).get()
        if result.reason != speechsdk.ResultReason.SynthesizingAudioCompleted:
            details = result.cancellation_details
            message = getattr(details, "error_details", "") or str(result.reason)
            raise AuthenticationError(f"Azureの認証情報が無効です: {message}")

    async def validate(self) -> None:
        """
        最小の音声合成を実行して認証情報を検証する

        Raises:
            ConfigurationError: キーまたはリージョンが空の場合
            AuthenticationError: リモート呼び出しが失敗した場合
        """
        self.ensure_configured()
        try:
            await asyncio.to_thread(self._probe)
        except AuthenticationError:
            logger.error("認証情報の検証に失敗しました (region=%s)", self.settings.speech_region)
            raise
        except Exception as e:
            logger.error("認証情報の検証中にエラーが発生しました: %s", e)
            raise AuthenticationError(f"Azureの認証情報が無効です: {e}") from e
        logger.debug("認証情報の検証に成功しました (region=%s)", self.settings.speech_region)


class APICheckService:
    """API接続状態をチェックするサービスクラス"""

    def __init__(self, settings: SpeechSettings) -> None:
        """初期化処理"""
        self.gate = SpeechCredentialGate(settings)

    async def check_azure_speech_api(self) -> Dict[str, str]:
        """
        Azure Speech Service APIの接続状態をチェック

        Returns:
            API名と状態を含む辞書
        """
        try:
            await self.gate.validate()
        except ConfigurationError:
            return {
                "name": "Azure Speech Service API",
                "status": "不明",
                "message": "APIキーまたはリージョンが設定されていません",
            }
        except AuthenticationError as e:
            return {
                "name": "Azure Speech Service API",
                "status": "エラー",
                "message": f"接続エラー: {str(e)}",
            }
        return {
            "name": "Azure Speech Service API",
            "status": "利用可能",
            "message": "APIキーとリージョンが有効です",
        }
