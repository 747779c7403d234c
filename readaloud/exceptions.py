"""
音声サービスの例外定義
"""


class SpeechServiceError(Exception):
    """音声サービス関連の例外の基底クラス"""


class ConfigurationError(SpeechServiceError, ValueError):
    """APIキーまたはリージョンが設定されていない（ネットワーク呼び出しなし、リトライ不可）"""


class InvalidRequestError(SpeechServiceError, ValueError):
    """参照テキストや音声データが空など、リクエスト自体が不正"""


class AuthenticationError(SpeechServiceError):
    """認証情報がサービス側で拒否された（リトライ不可）"""


class RecognitionError(SpeechServiceError):
    """
    音声認識がキャンセルされた、またはリトライ回数を使い切った

    Attributes:
        error_code: キャンセル時のエラーコード名（不明な場合はNone）
        details: サービスから返されたエラー詳細
        attempts: 実行した試行回数
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: str = "",
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details
        self.attempts = attempts


class SpeechSynthesisError(SpeechServiceError):
    """音声合成がキャンセルされた"""
