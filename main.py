"""
ReadAloud 発音練習 - メインエントリーポイント
録音した音声をAzureで評価し、結果をコンソールに表示する
"""
import argparse
import asyncio
import sys
from pathlib import Path

from readaloud.config import APP_DATA_DIR, SpeechSettings, load_speech_settings
from readaloud.exceptions import InvalidRequestError
from readaloud.logger import setup_logging
from readaloud.models.schemas import AssessmentContext
from readaloud.services.api_check_service import APICheckService
from readaloud.services.audio_service import AudioService
from readaloud.services.evaluation_service import PronunciationEvaluationService
from readaloud.services.synthesis_service import SpeechSynthesisService


class App:
    """アプリケーションのメインクラス"""

    def __init__(self, settings: SpeechSettings) -> None:
        """
        初期化処理

        Args:
            settings: Azure Speech Serviceの設定
        """
        self.settings = settings
        self.audio_service = AudioService(settings)
        self.evaluation_service = PronunciationEvaluationService(settings)
        self.synthesis_service = SpeechSynthesisService(settings)
        self.api_check_service = APICheckService(settings)

    def read_audio(self, wav: Path | None, seconds: float) -> str:
        """WAVファイルまたはマイクから音声を取得してbase64で返す"""
        if wav is not None:
            pcm = self.audio_service.load_wav(wav)
        else:
            print(f"{seconds:.0f}秒間録音します。読み上げてください...")
            pcm = self.audio_service.record_pcm(seconds)
        return self.audio_service.encode_base64(pcm)

    async def practice_word(self, word: str, wav: Path | None, seconds: float) -> None:
        """単語の発音練習"""
        try:
            audio_base64 = self.read_audio(wav, seconds)
            report = await self.evaluation_service.evaluate_word(word, audio_base64)
        except InvalidRequestError as e:
            print(f"\n音声を評価できません: {e}")
            return
        scores = report.scores
        print(f"\n単語: {report.feedback.word}  ({'正解' if report.feedback.is_correct else 'もう一度'})")
        print(f"  正確性: {scores.accuracy:.0f}  流暢さ: {scores.fluency:.0f}  完全性: {scores.completeness:.0f}")
        print(f"  発音: {scores.pronunciation:.0f}  韻律: {scores.prosody:.0f}")
        if report.feedback.suggestion:
            print(f"  ヒント: {report.feedback.suggestion}")
        if report.source == "fallback":
            print("  ※ 音声サービスに接続できなかったため、サンプルのスコアを表示しています")

    async def practice_sentence(
        self, text: str, wav: Path | None, seconds: float, context: AssessmentContext
    ) -> None:
        """文・段落の発音練習"""
        try:
            audio_base64 = self.read_audio(wav, seconds)
            report = await self.evaluation_service.evaluate_sentence(text, audio_base64, context)
        except InvalidRequestError as e:
            print(f"\n音声を評価できません: {e}")
            return
        scores = report.scores
        print(f"\n文: {report.text}")
        print(f"  正確性: {scores.accuracy:.0f}  流暢さ: {scores.fluency:.0f}  完全性: {scores.completeness:.0f}")
        print(f"  読解レベル: {report.reading_level.value}")
        for feedback in report.words:
            mark = "○" if feedback.is_correct else "×"
            line = f"  {mark} {feedback.word:<15} {feedback.accuracy:>5.0f}"
            if feedback.suggestion:
                line += f"  {feedback.suggestion}"
            print(line)
        if report.source == "fallback":
            print("  ※ 音声サービスに接続できなかったため、サンプルのスコアを表示しています")

    async def speak(self, text: str) -> None:
        """テキストを読み上げる"""
        audio = await self.synthesis_service.synthesize(text)
        self.audio_service.play_audio(audio)

    async def check(self) -> bool:
        """API接続状態を表示"""
        status = await self.api_check_service.check_azure_speech_api()
        print(f"{status['name']}: {status['status']} - {status['message']}")
        return status["status"] == "利用可能"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ReadAloud 発音練習")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("word", "単語の発音を評価"),
        ("sentence", "文の発音を評価"),
        ("passage", "段落の発音を評価"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("text")
        sub.add_argument("--wav", type=Path, help="16kHz/16bit/モノラルのWAVファイル")
        sub.add_argument("--seconds", type=float, default=3.0, help="録音時間（秒）")

    speak = subparsers.add_parser("speak", help="テキストを読み上げる")
    speak.add_argument("text")

    subparsers.add_parser("check", help="Azure Speech Serviceの接続を確認")
    return parser


async def run(args: argparse.Namespace, app: App) -> int:
    if args.command == "word":
        await app.practice_word(args.text, args.wav, args.seconds)
    elif args.command in ("sentence", "passage"):
        await app.practice_sentence(
            args.text, args.wav, args.seconds, AssessmentContext(args.command)
        )
    elif args.command == "speak":
        await app.speak(args.text)
    elif args.command == "check":
        return 0 if await app.check() else 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """アプリケーションの起動"""
    args = build_parser().parse_args(argv)

    APP_DATA_DIR.mkdir(parents=True, exist_ok=True)
    setup_logging()

    # main.pyと同じディレクトリの.envを読み込む（なければ環境変数のみ）
    settings = load_speech_settings(Path(__file__).parent / ".env")
    return asyncio.run(run(args, App(settings)))


if __name__ == "__main__":
    sys.exit(main())
