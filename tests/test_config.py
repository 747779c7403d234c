"""
設定のテスト
"""
import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from readaloud.config import SpeechSettings, load_speech_settings
from readaloud.logger import setup_logging


class TestSpeechSettings:
    """SpeechSettingsのテストクラス"""

    @patch.dict(
        os.environ,
        {
            "AZURE_SPEECH_KEY": "test_key",
            "AZURE_SPEECH_REGION": "japaneast",
            "ASSESSMENT_TIMEOUT_SECONDS": "12.5",
        },
        clear=True,
    )
    def test_load_from_environment(self, tmp_path):
        """環境変数から設定を読み込む"""
        settings = load_speech_settings(tmp_path / ".env")

        assert settings.speech_key == "test_key"
        assert settings.speech_region == "japaneast"
        assert settings.assessment_timeout_seconds == 12.5
        assert settings.is_configured is True

    @patch.dict(os.environ, {"AZURE_SPEECH_KEY": "test_key"}, clear=True)
    def test_defaults(self, tmp_path):
        """未設定の項目は既定値を使う"""
        settings = load_speech_settings(tmp_path / ".env")

        assert settings.speech_region == "southeastasia"
        assert settings.language == "en-US"
        assert settings.voice_name == "en-US-JennyNeural"
        assert settings.max_attempts == 3
        assert settings.backoff_base_seconds == 1.0
        assert settings.silence_timeout_ms == 5000
        assert (settings.sample_rate, settings.bits_per_sample, settings.channels) == (16000, 16, 1)

    @patch.dict(os.environ, {}, clear=True)
    def test_load_from_env_file(self, tmp_path):
        """.envファイルから設定を読み込む"""
        env_file = tmp_path / ".env"
        env_file.write_text("AZURE_SPEECH_KEY=file_key\nAZURE_SPEECH_REGION=westus\n", encoding="utf-8")

        settings = load_speech_settings(env_file)

        assert settings.speech_key == "file_key"
        assert settings.speech_region == "westus"

    @patch.dict(os.environ, {"AZURE_SPEECH_KEY": "env_key"}, clear=True)
    def test_missing_env_file_uses_environment_only(self, tmp_path):
        """指定した.envファイルがない場合は.envを探索せず環境変数のみ使う"""
        with patch("readaloud.config.load_dotenv") as mock_load_dotenv:
            settings = load_speech_settings(tmp_path / ".env")

        mock_load_dotenv.assert_not_called()
        assert settings.speech_key == "env_key"

    def test_not_configured(self):
        """キーが空の場合は未設定"""
        assert SpeechSettings().is_configured is False
        assert SpeechSettings(speech_key="key", speech_region=" ").is_configured is False

    def test_invalid_retry_budget(self):
        """試行回数は1以上"""
        with pytest.raises(ValidationError):
            SpeechSettings(max_attempts=0)


class TestSetupLogging:
    """ログ設定のテストクラス"""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        """テスト後にアプリのロガーを元に戻す"""
        logger = logging.getLogger("readaloud")
        saved = (logger.handlers[:], logger.level, logger.propagate)
        yield
        for handler in logger.handlers:
            handler.close()
        logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]

    def test_setup_logging_writes_file(self, tmp_path):
        """アプリのロガーが標準出力とファイルに出力する"""
        log_file = tmp_path / "logs" / "readaloud.log"

        setup_logging(logging.DEBUG, log_file)
        logging.getLogger("readaloud.services.azure_service").info("hello")
        for handler in logging.getLogger("readaloud").handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello" in log_file.read_text(encoding="utf-8")
        assert logging.getLogger("readaloud").propagate is False

    def test_setup_logging_stdout_only(self):
        """ファイルを指定しない場合は標準出力のみ"""
        setup_logging(log_file=None)

        assert len(logging.getLogger("readaloud").handlers) == 1
