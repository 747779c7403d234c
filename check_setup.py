"""
セットアップ確認スクリプト
依存関係・Azure Speechの設定・録音デバイス・認証情報を順に確認する
"""
import asyncio
import importlib
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

# (インポート名, パッケージ名)
REQUIRED_PACKAGES = [
    ("dotenv", "python-dotenv"),
    ("azure.cognitiveservices.speech", "azure-cognitiveservices-speech"),
    ("pydantic", "pydantic"),
    ("numpy", "numpy"),
    ("sounddevice", "sounddevice"),
]


def check_imports() -> bool:
    """必要なパッケージとアプリケーションモジュールのインポートを確認"""
    errors: list[str] = []

    for module_name, package_name in REQUIRED_PACKAGES:
        try:
            importlib.import_module(module_name)
            print(f"✓ {package_name}: OK")
        except ImportError:
            errors.append(f"{package_name} がインストールされていません。")
        except OSError as e:
            # sounddeviceはPortAudioがないと読み込み時に失敗する
            errors.append(f"{package_name} を読み込めません（PortAudioが必要です）: {e}")

    try:
        from readaloud.services.evaluation_service import PronunciationEvaluationService  # noqa: F401
        print("✓ アプリケーションモジュール: OK")
    except ImportError as e:
        errors.append(f"アプリケーションモジュールのインポートエラー: {e}")

    if errors:
        print("\n❌ 以下の問題が見つかりました:")
        for error in errors:
            print(f"  - {error}")
        return False
    return True


def check_settings(settings) -> bool:
    """Azure Speech Serviceの設定内容を表示し、キーとリージョンの有無を確認"""
    print(f"  リージョン: {settings.speech_region}")
    print(f"  言語: {settings.language}")
    print(f"  音声: {settings.voice_name}")
    print(f"  評価の上限時間: {settings.assessment_timeout_seconds:.0f}秒")

    if not settings.is_configured:
        print("❌ AZURE_SPEECH_KEY と AZURE_SPEECH_REGION を .env に設定してください。")
        return False
    print("✓ Azure Speechの設定: OK")
    return True


def check_audio_device(settings) -> bool:
    """既定の入力デバイスが16kHz/16bit/モノラルで録音できるか確認"""
    import sounddevice as sd

    try:
        sd.check_input_settings(
            samplerate=settings.sample_rate, channels=settings.channels, dtype="int16"
        )
    except Exception as e:
        print(f"⚠ 録音デバイスを使用できません（--wav でWAVファイルを指定してください）: {e}")
        return False
    print("✓ 録音デバイス: OK")
    return True


def check_credentials(settings) -> bool:
    """Azure Speech Serviceに接続して認証情報を確認"""
    from readaloud.services.api_check_service import APICheckService

    status = asyncio.run(APICheckService(settings).check_azure_speech_api())
    print(f"{status['name']}: {status['status']} - {status['message']}")
    return status["status"] == "利用可能"


if __name__ == "__main__":
    print("=== セットアップ確認 ===\n")

    if not check_imports():
        print("\n依存関係をインストールするには:")
        print("  pip install -e .[test]")
        sys.exit(1)

    from readaloud.config import load_speech_settings

    speech_settings = load_speech_settings(Path(__file__).parent / ".env")
    print()
    configured = check_settings(speech_settings)
    print()
    check_audio_device(speech_settings)
    print()
    connected = configured and check_credentials(speech_settings)

    print("\n" + "=" * 40)
    if connected:
        print("✓ セットアップは完了しています。")
        print("\n実行方法:")
        print("  python main.py word cat")
        print("  python main.py sentence \"The cat sat.\" --wav sample.wav")
        sys.exit(0)

    print("❌ Azure Speechに接続できません。フォールバックのスコアのみ表示されます。")
    sys.exit(1)
