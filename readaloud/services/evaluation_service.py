"""
評価サービス
Azureの発音評価とフォールバック評価を統合し、画面に常に有効な結果を返す
"""
import binascii
import logging
import random
from typing import List

from readaloud.config import SpeechSettings
from readaloud.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidRequestError,
    RecognitionError,
    SpeechServiceError,
)
from readaloud.models.schemas import (
    AssessmentContext,
    AssessmentResult,
    Degenerate,
    Failed,
    OverallScores,
    Outcome,
    Scored,
    ScoreFields,
    SentenceAssessmentReport,
    SentenceAssessmentResult,
    WordAssessmentReport,
    WordFeedback,
)
from readaloud.services import fallback_service
from readaloud.services.azure_service import AzurePronunciationService

logger = logging.getLogger(__name__)


def _overall_scores(result: ScoreFields) -> OverallScores:
    return OverallScores(
        accuracy=result.accuracy_score,
        fluency=result.fluency_score,
        completeness=result.completeness_score,
        pronunciation=result.pronunciation_score,
        prosody=result.prosody_score,
    )


def _log_failure(outcome: Failed) -> None:
    error = outcome.error
    if isinstance(error, ConfigurationError):
        logger.error("Azure Speechの設定が不足しています（デプロイ設定を確認してください）: %s", error)
    elif isinstance(error, AuthenticationError):
        logger.error("Azure Speechの認証に失敗しました: %s", error)
    elif isinstance(error, RecognitionError):
        logger.warning(
            "音声認識に失敗しました (code=%s, attempts=%d): %s",
            error.error_code,
            error.attempts,
            error.details,
        )
    elif isinstance(error, binascii.Error):
        logger.warning("音声データのデコードに失敗しました: %s", error)
    else:
        logger.error("発音評価中に予期しないエラーが発生しました: %r", error)


class PronunciationEvaluationService:
    """発音評価を統合的に実行するサービスクラス"""

    def __init__(
        self,
        settings: SpeechSettings,
        azure_service: AzurePronunciationService | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        初期化処理

        Args:
            settings: Azure Speech Serviceの設定
            azure_service: 発音評価サービス（テスト用に差し替え可能）
            rng: フォールバック評価用の乱数生成器
        """
        self.azure_service = azure_service or AzurePronunciationService(settings)
        self.rng = rng or random.Random()

    async def assess_word_outcome(self, reference_text: str, audio_base64: str) -> Outcome:
        """
        単語の発音評価を実行し、結果をScored/Degenerate/Failedに分類

        入力が空の場合のみ例外を送出する。
        """
        try:
            result = await self.azure_service.assess_pronunciation(reference_text, audio_base64)
        except InvalidRequestError:
            raise
        except binascii.Error as e:
            return Failed(error=e)
        except SpeechServiceError as e:
            return Failed(error=e)
        except Exception as e:
            logger.exception("単語の発音評価で予期しない例外が発生しました")
            return Failed(error=e)
        return self.classify(result)

    async def assess_sentence_outcome(self, reference_text: str, audio_base64: str) -> Outcome:
        """文の発音評価を実行し、結果をScored/Degenerate/Failedに分類"""
        try:
            result = await self.azure_service.assess_sentence_pronunciation(
                reference_text, audio_base64
            )
        except InvalidRequestError:
            raise
        except binascii.Error as e:
            return Failed(error=e)
        except SpeechServiceError as e:
            return Failed(error=e)
        except Exception as e:
            logger.exception("文の発音評価で予期しない例外が発生しました")
            return Failed(error=e)
        return self.classify(result)

    @staticmethod
    def classify(result: AssessmentResult | SentenceAssessmentResult) -> Outcome:
        """全スコアが0の結果はDegenerateとして扱う"""
        if result.has_valid_scores():
            return Scored(result=result)
        return Degenerate(result=result)

    def resolve_word(
        self,
        reference_text: str,
        outcome: Outcome,
        context: AssessmentContext = AssessmentContext.WORD,
    ) -> WordAssessmentReport:
        """
        単語評価の分類結果を画面用のレポートに変換

        Scored以外はフォールバック評価に置き換える。
        """
        if isinstance(outcome, Scored):
            scores = _overall_scores(outcome.result)
            return WordAssessmentReport(
                feedback=fallback_service.build_feedback(reference_text, scores.accuracy),
                scores=scores,
                source="azure",
                outcome=outcome.kind,
            )

        if isinstance(outcome, Failed):
            _log_failure(outcome)
        else:
            logger.warning("Azureが全スコア0を返したため、フォールバック評価を使用します")

        feedback, scores = fallback_service.fallback_word_feedback(reference_text, context, self.rng)
        return WordAssessmentReport(
            feedback=feedback,
            scores=scores,
            source="fallback",
            outcome=outcome.kind,
        )

    def resolve_sentence(
        self,
        reference_text: str,
        outcome: Outcome,
        context: AssessmentContext = AssessmentContext.SENTENCE,
    ) -> SentenceAssessmentReport:
        """文評価の分類結果を画面用のレポートに変換"""
        if isinstance(outcome, Scored):
            result = outcome.result
            thresholds = fallback_service.AZURE_THRESHOLDS
            source = "azure"
        else:
            if isinstance(outcome, Failed):
                _log_failure(outcome)
            else:
                logger.warning("Azureが全スコア0を返したため、文の評価をシミュレーションします")
            result = fallback_service.simulate_sentence_assessment(reference_text, context, self.rng)
            thresholds = fallback_service.FALLBACK_THRESHOLDS
            source = "fallback"

        words: List[WordFeedback] = [
            fallback_service.build_feedback(word.word, word.accuracy_score, thresholds)
            for word in result.words
        ]
        scores = _overall_scores(result)
        return SentenceAssessmentReport(
            text=reference_text,
            words=words,
            scores=scores,
            reading_level=fallback_service.determine_reading_level(
                scores.accuracy, scores.fluency, scores.completeness
            ),
            source=source,
            outcome=outcome.kind,
        )

    async def evaluate_word(
        self,
        reference_text: str,
        audio_base64: str,
        context: AssessmentContext = AssessmentContext.WORD,
    ) -> WordAssessmentReport:
        """
        単語の発音を評価し、常に有効なスコアを持つレポートを返す

        Args:
            reference_text: 参照テキスト
            audio_base64: base64エンコードされたPCM音声
            context: フォールバック時の難易度区分

        Returns:
            単語評価レポート
        """
        outcome = await self.assess_word_outcome(reference_text, audio_base64)
        return self.resolve_word(reference_text, outcome, context)

    async def evaluate_sentence(
        self,
        reference_text: str,
        audio_base64: str,
        context: AssessmentContext = AssessmentContext.SENTENCE,
    ) -> SentenceAssessmentReport:
        """
        文の発音を評価し、常に有効なスコアを持つレポートを返す

        Args:
            reference_text: 参照テキスト
            audio_base64: base64エンコードされたPCM音声
            context: フォールバック時の難易度区分（sentenceまたはpassage）

        Returns:
            文評価レポート
        """
        outcome = await self.assess_sentence_outcome(reference_text, audio_base64)
        return self.resolve_sentence(reference_text, outcome, context)
