"""
データモデル（スキーマ定義）
"""

import base64
import binascii
import math
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def clamp_score(value: object) -> float:
    """スコアを0〜100の範囲に収める（None・NaNは0として扱う）"""
    if value is None:
        return 0
    score = float(value)  # type: ignore[arg-type]
    if math.isnan(score):
        return 0
    return min(100, max(0, score))


Score = Annotated[float, BeforeValidator(clamp_score)]


class AssessmentContext(str, Enum):
    """評価対象の難易度区分"""

    WORD = "word"
    SENTENCE = "sentence"
    PASSAGE = "passage"


class ErrorType(str, Enum):
    """単語ごとの誤りの種類"""

    NONE = "None"
    MISPRONUNCIATION = "Mispronunciation"
    OMISSION = "Omission"
    INSERTION = "Insertion"


class ReadingLevel(str, Enum):
    """読解レベル"""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class AssessmentRequest(BaseModel):
    """発音評価リクエスト（1回の評価ごとに生成する）"""

    model_config = ConfigDict(frozen=True)

    reference_text: str = Field(min_length=1)
    audio: bytes = Field(min_length=1)

    @classmethod
    def from_base64(cls, reference_text: str, audio_base64: str) -> "AssessmentRequest":
        """
        base64エンコードされた音声からリクエストを生成

        Args:
            reference_text: 参照テキスト
            audio_base64: base64エンコードされたPCM音声

        Returns:
            デコード済みの音声を持つリクエスト

        Raises:
            binascii.Error: base64として不正な文字列、またはデコード結果が空の場合
        """
        audio: bytes = base64.b64decode(audio_base64, validate=True)
        if not audio:
            raise binascii.Error("デコード後の音声データが空です")
        return cls(reference_text=reference_text, audio=audio)


class WordScore(BaseModel):
    """文中の単語ごとの評価"""

    word: str
    accuracy_score: Score = 0
    error_type: ErrorType = ErrorType.NONE
    offset: int | None = Field(default=None, ge=0)  # 100ナノ秒単位
    duration: int | None = Field(default=None, ge=0)  # 100ナノ秒単位


class ScoreFields(BaseModel):
    """発音評価の5つのスコア"""

    accuracy_score: Score = 0
    fluency_score: Score = 0
    completeness_score: Score = 0
    pronunciation_score: Score = 0
    prosody_score: Score = 0

    def has_valid_scores(self) -> bool:
        """いずれかのスコアが0より大きければTrue"""
        return any(
            score > 0
            for score in (
                self.accuracy_score,
                self.fluency_score,
                self.completeness_score,
                self.pronunciation_score,
                self.prosody_score,
            )
        )


class AssessmentResult(ScoreFields):
    """単語の発音評価結果"""

    word: str


class SentenceAssessmentResult(ScoreFields):
    """文の発音評価結果"""

    words: List[WordScore] = Field(default_factory=list)


class WordFeedback(BaseModel):
    """画面に表示する単語ごとのフィードバック"""

    word: str
    accuracy: float
    is_correct: bool
    suggestion: str | None = None


class OverallScores(BaseModel):
    """画面に表示する総合スコア"""

    accuracy: float
    fluency: float
    completeness: float
    pronunciation: float
    prosody: float

    def has_valid_scores(self) -> bool:
        return any(
            score > 0
            for score in (
                self.accuracy,
                self.fluency,
                self.completeness,
                self.pronunciation,
                self.prosody,
            )
        )


class Scored(BaseModel):
    """有効なスコアが得られた"""

    kind: Literal["scored"] = "scored"
    result: Union[AssessmentResult, SentenceAssessmentResult]


class Degenerate(BaseModel):
    """認識は成功したが全スコアが0だった"""

    kind: Literal["degenerate"] = "degenerate"
    result: Union[AssessmentResult, SentenceAssessmentResult]


class Failed(BaseModel):
    """評価呼び出しが例外で終了した"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["failed"] = "failed"
    error: Exception


Outcome = Union[Scored, Degenerate, Failed]


class WordAssessmentReport(BaseModel):
    """単語評価の最終結果（常に有効なスコアを持つ）"""

    feedback: WordFeedback
    scores: OverallScores
    source: Literal["azure", "fallback"]
    outcome: Literal["scored", "degenerate", "failed"]


class SentenceAssessmentReport(BaseModel):
    """文評価の最終結果（常に有効なスコアを持つ）"""

    text: str
    words: List[WordFeedback]
    scores: OverallScores
    reading_level: ReadingLevel
    source: Literal["azure", "fallback"]
    outcome: Literal["scored", "degenerate", "failed"]
