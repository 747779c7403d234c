"""
アプリケーション設定
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def get_app_data_dir() -> Path:
    """
    アプリケーションのデータディレクトリを取得

    Returns:
        アプリケーションデータディレクトリのパス
    """
    if sys.platform == "win32":
        # Windowsの場合、AppData\Local\ReadAloudを使用
        app_data: str | None = os.getenv("LOCALAPPDATA")
        if app_data:
            return Path(app_data) / "ReadAloud"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "ReadAloud"
    # その他のOSまたはフォールバック
    return Path.home() / ".readaloud"


def get_log_file() -> Path:
    """
    ログファイルのパスを取得

    Returns:
        ログファイルのパス
    """
    return get_app_data_dir() / "readaloud.log"


# アプリケーションデータディレクトリ
APP_DATA_DIR = get_app_data_dir()

# ログファイル
LOG_FILE = get_log_file()


class SpeechSettings(BaseModel):
    """Azure Speech Serviceの接続設定と評価パラメータ"""

    speech_key: str = ""
    speech_region: str = "southeastasia"
    language: str = "en-US"
    voice_name: str = "en-US-JennyNeural"

    # 録音フォーマット（16kHz / 16bit / モノラル PCM）
    sample_rate: int = 16000
    bits_per_sample: int = 16
    channels: int = 1

    silence_timeout_ms: int = 5000
    max_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=1.0, ge=0)
    # リトライを含めた評価全体の上限時間
    assessment_timeout_seconds: float = Field(default=30.0, gt=0)

    @property
    def is_configured(self) -> bool:
        """キーとリージョンの両方が設定されているか"""
        return bool(self.speech_key.strip() and self.speech_region.strip())


def load_speech_settings(env_path: Path | None = None) -> SpeechSettings:
    """
    .envファイルと環境変数からSpeechSettingsを生成

    プロセス起動時に一度だけ呼び出し、各サービスのコンストラクタに渡す。

    Args:
        env_path: .envファイルのパス（存在しない場合は環境変数のみ使う。指定しない場合はdotenvの探索に任せる）

    Returns:
        Azure Speech Serviceの設定
    """
    if env_path is None:
        load_dotenv()
    elif env_path.exists():
        load_dotenv(env_path)

    defaults = SpeechSettings()
    return SpeechSettings(
        speech_key=os.getenv("AZURE_SPEECH_KEY", ""),
        speech_region=os.getenv("AZURE_SPEECH_REGION") or defaults.speech_region,
        language=os.getenv("AZURE_SPEECH_LANGUAGE") or defaults.language,
        voice_name=os.getenv("AZURE_SPEECH_VOICE") or defaults.voice_name,
        assessment_timeout_seconds=float(
            os.getenv("ASSESSMENT_TIMEOUT_SECONDS") or defaults.assessment_timeout_seconds
        ),
    )
