"""
Azure Pronunciation Assessmentサービス
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Sequence

import azure.cognitiveservices.speech as speechsdk

from readaloud.config import SpeechSettings
from readaloud.exceptions import InvalidRequestError, RecognitionError
from readaloud.models.schemas import (
    AssessmentRequest,
    AssessmentResult,
    ErrorType,
    SentenceAssessmentResult,
    WordScore,
)
from readaloud.services.api_check_service import SpeechCredentialGate

logger = logging.getLogger(__name__)

# 一時的な障害とみなしてリトライするキャンセルエラーコード
TRANSIENT_ERROR_CODES = frozenset(
    {
        speechsdk.CancellationErrorCode.ConnectionFailure,
        speechsdk.CancellationErrorCode.ServiceTimeout,
        speechsdk.CancellationErrorCode.ServiceError,
        speechsdk.CancellationErrorCode.ServiceUnavailable,
        speechsdk.CancellationErrorCode.TooManyRequests,
    }
)


async def _backoff(seconds: float) -> None:
    await asyncio.sleep(seconds)


def map_pronunciation_result(assessment: Any, word: str) -> AssessmentResult:
    """
    SDKの発音評価結果をAssessmentResultに変換（欠けているスコアは0）

    Args:
        assessment: speechsdk.PronunciationAssessmentResult
        word: 参照テキスト

    Returns:
        単語の発音評価結果
    """
    return AssessmentResult(
        accuracy_score=getattr(assessment, "accuracy_score", None),
        fluency_score=getattr(assessment, "fluency_score", None),
        completeness_score=getattr(assessment, "completeness_score", None),
        pronunciation_score=getattr(assessment, "pronunciation_score", None),
        prosody_score=getattr(assessment, "prosody_score", None),
        word=word,
    )


def _parse_error_type(value: Any) -> ErrorType:
    try:
        return ErrorType(value)
    except ValueError:
        # 韻律のエラー種別（UnexpectedBreakなど）は単語の誤りとしては扱わない
        return ErrorType.NONE


def _tick(value: Any) -> int | None:
    if value is None:
        return None
    return max(0, int(value))


def align_words(tokens: Sequence[str], raw_words: Sequence[Dict[str, Any]]) -> List[WordScore]:
    """
    サービスが返した単語を参照テキストのトークンに位置で対応付ける

    挿入語は除外し、足りない位置は脱落（Omission）として補う。
    オフセットは文全体で単調非減少になるよう補正する。

    Args:
        tokens: 参照テキストを空白で区切ったトークン
        raw_words: 詳細JSONの単語リスト

    Returns:
        トークンと同じ長さの単語評価リスト
    """
    kept: List[Dict[str, Any]] = []
    for raw in raw_words:
        details = raw.get("PronunciationAssessment") or raw
        if _parse_error_type(details.get("ErrorType")) != ErrorType.INSERTION:
            kept.append(raw)

    words: List[WordScore] = []
    last_offset = 0
    for index, token in enumerate(tokens):
        if index >= len(kept):
            words.append(WordScore(word=token, accuracy_score=0, error_type=ErrorType.OMISSION))
            continue

        raw = kept[index]
        details = raw.get("PronunciationAssessment") or raw
        offset = _tick(raw.get("Offset"))
        if offset is not None:
            offset = max(offset, last_offset)
            last_offset = offset
        words.append(
            WordScore(
                word=token,
                accuracy_score=details.get("AccuracyScore"),
                error_type=_parse_error_type(details.get("ErrorType", "None")),
                offset=offset,
                duration=_tick(raw.get("Duration")),
            )
        )
    return words


def parse_sentence_result(json_result: str, reference_text: str) -> SentenceAssessmentResult:
    """
    詳細形式のJSON結果から文の発音評価結果を生成

    Args:
        json_result: SpeechServiceResponse_JsonResultの文字列
        reference_text: 参照テキスト

    Returns:
        文の発音評価結果

    Raises:
        RecognitionError: JSONを解析できない、または評価結果が含まれない場合
    """
    try:
        data: Dict[str, Any] = json.loads(json_result)
    except (TypeError, json.JSONDecodeError) as e:
        raise RecognitionError(
            "発音評価のJSON結果を解析できませんでした", details=str(e)
        ) from e

    best: Dict[str, Any] = (data.get("NBest") or [{}])[0]
    assessment: Dict[str, Any] | None = best.get("PronunciationAssessment")
    if assessment is None:
        raise RecognitionError(
            "JSON結果に発音評価が含まれていません", details=json_result[:200]
        )

    # 旧形式では単語リストが発音評価の中に入っている
    raw_words = best.get("Words") or assessment.get("Words") or []
    return SentenceAssessmentResult(
        accuracy_score=assessment.get("AccuracyScore"),
        fluency_score=assessment.get("FluencyScore"),
        completeness_score=assessment.get("CompletenessScore"),
        pronunciation_score=assessment.get("PronScore"),
        prosody_score=assessment.get("ProsodyScore"),
        words=align_words(reference_text.split(), raw_words),
    )


class AzurePronunciationService:
    """Azure Pronunciation Assessmentを使用するサービスクラス"""

    def __init__(
        self,
        settings: SpeechSettings,
        gate: SpeechCredentialGate | None = None,
    ) -> None:
        """
        初期化処理

        Args:
            settings: Azure Speech Serviceの設定
            gate: 認証情報の検証クラス（指定しない場合は設定から生成）
        """
        self.settings = settings
        self.gate = gate or SpeechCredentialGate(settings)

    async def assess_pronunciation(
        self, reference_text: str, audio_base64: str
    ) -> AssessmentResult:
        """
        単語の発音を評価

        全スコアが0の結果もそのまま返す。フォールバックの判断は呼び出し側で行う。

        Args:
            reference_text: 参照テキスト（単語）
            audio_base64: base64エンコードされた16kHz/16bit/モノラルのPCM音声

        Returns:
            単語の発音評価結果

        Raises:
            InvalidRequestError: 参照テキストまたは音声が空の場合
            ConfigurationError: 認証情報が設定されていない場合
            binascii.Error: 音声がbase64として不正、またはデコード結果が空の場合
            AuthenticationError: 認証情報が拒否された場合
            RecognitionError: 認識がキャンセルされた、またはリトライを使い切った場合
        """
        self._require_inputs(reference_text, audio_base64)
        await self.gate.validate()

        request = AssessmentRequest.from_base64(reference_text, audio_base64)
        logger.info("単語の発音評価を開始します: %s (%d bytes)", reference_text, len(request.audio))

        result = await self._recognize(request, speechsdk.PronunciationAssessmentGranularity.Word)
        try:
            assessment = speechsdk.PronunciationAssessmentResult(result)
        except Exception as e:
            raise RecognitionError(
                f"発音評価結果の処理に失敗しました: {e}", details=str(e)
            ) from e

        response = map_pronunciation_result(assessment, reference_text)
        if not response.has_valid_scores():
            logger.warning("全スコアが0の評価結果を受信しました: %s", reference_text)
        else:
            logger.info("単語の発音評価が完了しました: %s", response.model_dump())
        return response

    async def assess_sentence_pronunciation(
        self, reference_text: str, audio_base64: str
    ) -> SentenceAssessmentResult:
        """
        文の発音を音素単位で評価し、単語ごとの内訳を返す

        Args:
            reference_text: 参照テキスト（文または段落）
            audio_base64: base64エンコードされた16kHz/16bit/モノラルのPCM音声

        Returns:
            参照テキストのトークンと同じ長さの単語リストを持つ評価結果
        """
        self._require_inputs(reference_text, audio_base64)
        await self.gate.validate()

        request = AssessmentRequest.from_base64(reference_text, audio_base64)
        logger.info("文の発音評価を開始します: %s", reference_text)

        result = await self._recognize(
            request, speechsdk.PronunciationAssessmentGranularity.Phoneme
        )
        json_result = result.properties.get(speechsdk.PropertyId.SpeechServiceResponse_JsonResult)
        response = parse_sentence_result(json_result, reference_text)
        logger.info(
            "文の発音評価が完了しました: accuracy=%s, words=%d",
            response.accuracy_score,
            len(response.words),
        )
        return response

    @staticmethod
    def _require_inputs(reference_text: str, audio_base64: str) -> None:
        if not reference_text or not reference_text.strip():
            raise InvalidRequestError("参照テキストが空です")
        if not audio_base64:
            raise InvalidRequestError("音声データが空です")

    def _create_recognizer(
        self,
        request: AssessmentRequest,
        granularity: speechsdk.PronunciationAssessmentGranularity,
    ) -> speechsdk.SpeechRecognizer:
        """プッシュストリームと発音評価設定を持つ認識器を生成"""
        speech_config = speechsdk.SpeechConfig(
            subscription=self.settings.speech_key,
            region=self.settings.speech_region,
        )
        speech_config.speech_recognition_language = self.settings.language
        speech_config.output_format = speechsdk.OutputFormat.Detailed
        silence_ms = str(self.settings.silence_timeout_ms)
        speech_config.set_property(
            speechsdk.PropertyId.SpeechServiceConnection_InitialSilenceTimeoutMs, silence_ms
        )
        speech_config.set_property(
            speechsdk.PropertyId.SpeechServiceConnection_EndSilenceTimeoutMs, silence_ms
        )
        speech_config.set_property_by_name("SpeechServiceConnection_ReconnectOnError", "true")
        if granularity == speechsdk.PronunciationAssessmentGranularity.Phoneme:
            speech_config.request_word_level_timestamps()

        # 音声全体を書き込んでから閉じる（発話の終わりを認識器に伝える）
        stream_format = speechsdk.audio.AudioStreamFormat(
            samples_per_second=self.settings.sample_rate,
            bits_per_sample=self.settings.bits_per_sample,
            channels=self.settings.channels,
        )
        push_stream = speechsdk.audio.PushAudioInputStream(stream_format=stream_format)
        push_stream.write(request.audio)
        push_stream.close()
        audio_config = speechsdk.audio.AudioConfig(stream=push_stream)

        pronunciation_config = speechsdk.PronunciationAssessmentConfig(
            reference_text=request.reference_text,
            grading_system=speechsdk.PronunciationAssessmentGradingSystem.HundredMark,
            granularity=granularity,
            enable_miscue=True,
        )
        pronunciation_config.enable_prosody_assessment()

        recognizer = speechsdk.SpeechRecognizer(
            speech_config=speech_config, audio_config=audio_config
        )
        pronunciation_config.apply_to(recognizer)
        return recognizer

    def _recognize_once(
        self,
        request: AssessmentRequest,
        granularity: speechsdk.PronunciationAssessmentGranularity,
        attempt: int,
    ) -> speechsdk.SpeechRecognitionResult:
        """
        認識器を生成して一度だけ認識する

        認識器はこのメソッド内でのみ参照され、戻った時点で解放される。
        ストリーム生成時の例外はそのまま送出し、認識中の例外はRecognitionErrorに変換する。
        """
        recognizer = self._create_recognizer(request, granularity)
        try:
            return recognizer.recognize_once()
        except Exception as e:
            logger.error("音声認識中にエラーが発生しました: %s", e)
            raise RecognitionError(
                f"音声認識中にエラーが発生しました: {e}",
                details=str(e),
                attempts=attempt,
            ) from e

    async def _recognize(
        self,
        request: AssessmentRequest,
        granularity: speechsdk.PronunciationAssessmentGranularity,
    ) -> speechsdk.SpeechRecognitionResult:
        """リトライを含めた認識全体に上限時間を設ける"""
        timeout = self.settings.assessment_timeout_seconds
        try:
            return await asyncio.wait_for(
                self._recognize_with_retry(request, granularity), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("発音評価が%.1f秒以内に完了しませんでした", timeout)
            raise RecognitionError(
                f"発音評価がタイムアウトしました ({timeout}秒)", error_code="Timeout"
            ) from e

    async def _recognize_with_retry(
        self,
        request: AssessmentRequest,
        granularity: speechsdk.PronunciationAssessmentGranularity,
    ) -> speechsdk.SpeechRecognitionResult:
        max_attempts = self.settings.max_attempts
        attempt = 0
        while True:
            attempt += 1
            result = await asyncio.to_thread(
                self._recognize_once, request, granularity, attempt
            )

            if result.reason == speechsdk.ResultReason.RecognizedSpeech:
                return result

            if result.reason != speechsdk.ResultReason.Canceled:
                logger.warning("音声を認識できませんでした: %s", result.reason)
                raise RecognitionError(
                    f"音声を認識できませんでした: {result.reason}",
                    details=str(result.reason),
                    attempts=attempt,
                )

            details = result.cancellation_details
            logger.error(
                "音声認識がキャンセルされました: reason=%s, code=%s, details=%s",
                details.reason,
                details.error_code,
                details.error_details,
            )
            transient = (
                details.reason == speechsdk.CancellationReason.Error
                and details.error_code in TRANSIENT_ERROR_CODES
            )
            if transient and attempt < max_attempts:
                delay = self.settings.backoff_base_seconds * attempt
                logger.info(
                    "音声認識をリトライします (%d/%d, %.1f秒後)", attempt + 1, max_attempts, delay
                )
                await _backoff(delay)
                continue

            raise RecognitionError(
                f"音声認識がキャンセルされました: {details.error_details}",
                error_code=details.error_code.name,
                details=details.error_details or "",
                attempts=attempt,
            )
