"""
フォールバック評価サービス
Azureから有効な結果が得られない場合に、もっともらしいスコアを生成する
I/Oを行わない純粋な計算のみで、失敗しない
"""
import random
from typing import Dict, List, Tuple

from readaloud.models.schemas import (
    AssessmentContext,
    ErrorType,
    OverallScores,
    ReadingLevel,
    SentenceAssessmentResult,
    WordFeedback,
    WordScore,
)

SLOW_DOWN_SUGGESTION = "Try speaking more slowly and clearly."
VOWEL_SUGGESTION = "Good attempt! Focus on the vowel sounds."

# 難易度ごとの正確性スコアの範囲
ACCURACY_RANGES: Dict[AssessmentContext, Tuple[int, int]] = {
    AssessmentContext.WORD: (70, 100),
    AssessmentContext.SENTENCE: (65, 100),
    AssessmentContext.PASSAGE: (60, 100),
}

# (正解とみなす下限, 「ゆっくり話す」提案の上限)
AZURE_THRESHOLDS: Tuple[float, float] = (70, 60)
FALLBACK_THRESHOLDS: Tuple[float, float] = (75, 65)

# 合成した単語タイミングの間隔（100ナノ秒単位、0.4秒）
SIMULATED_WORD_TICKS = 4_000_000


def _clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def build_feedback(
    word: str, accuracy: float, thresholds: Tuple[float, float] = AZURE_THRESHOLDS
) -> WordFeedback:
    """
    正確性スコアから単語フィードバックを作成

    Args:
        word: 対象の単語
        accuracy: 正確性スコア
        thresholds: (正解の下限, 「ゆっくり話す」提案の上限)

    Returns:
        単語フィードバック
    """
    correct_threshold, slow_threshold = thresholds
    suggestion: str | None = None
    if accuracy < slow_threshold:
        suggestion = SLOW_DOWN_SUGGESTION
    elif accuracy < correct_threshold:
        suggestion = VOWEL_SUGGESTION
    return WordFeedback(
        word=word,
        accuracy=accuracy,
        is_correct=accuracy >= correct_threshold,
        suggestion=suggestion,
    )


def sample_accuracy(context: AssessmentContext, rng: random.Random | None = None) -> int:
    """難易度に応じた範囲から正確性スコアを一様に抽出"""
    rng = rng or random.Random()
    lower, upper = ACCURACY_RANGES[context]
    return rng.randint(lower, upper)


def generate_fallback_scores(
    context: AssessmentContext, rng: random.Random | None = None
) -> OverallScores:
    """
    難易度別のランダムな総合スコアを生成

    流暢さと完全性は正確性に揺らぎを加えて範囲内に収め、
    発音スコアは正確性の0.9倍、韻律スコアは0.7倍とする。

    Args:
        context: 評価対象の難易度区分
        rng: 乱数生成器（テスト用に差し替え可能）

    Returns:
        少なくとも1つのスコアが0より大きい総合スコア
    """
    rng = rng or random.Random()
    accuracy = sample_accuracy(context, rng)
    return _scores_from_accuracy(accuracy, rng)


def _scores_from_accuracy(accuracy: float, rng: random.Random) -> OverallScores:
    fluency = _clamp(accuracy + rng.uniform(-5, 5), 60, 100)
    completeness = _clamp(accuracy + rng.uniform(0, 15), 70, 100)
    return OverallScores(
        accuracy=accuracy,
        fluency=round(fluency),
        completeness=round(completeness),
        pronunciation=round(accuracy * 0.9),
        prosody=round(accuracy * 0.7),
    )


def fallback_word_feedback(
    word: str, context: AssessmentContext, rng: random.Random | None = None
) -> Tuple[WordFeedback, OverallScores]:
    """単語評価のフォールバック結果を生成"""
    scores = generate_fallback_scores(context, rng)
    return build_feedback(word, scores.accuracy, FALLBACK_THRESHOLDS), scores


def simulate_sentence_assessment(
    reference_text: str,
    context: AssessmentContext = AssessmentContext.SENTENCE,
    rng: random.Random | None = None,
) -> SentenceAssessmentResult:
    """
    Azureを呼ばずに文の評価結果を合成する（シミュレーション）

    単語は参照テキストを空白で区切ったものをそのまま使う（句読点は単語に付いたまま）。

    Args:
        reference_text: 参照テキスト
        context: 評価対象の難易度区分
        rng: 乱数生成器

    Returns:
        合成された文の評価結果
    """
    rng = rng or random.Random()
    _, mispronounced_below = FALLBACK_THRESHOLDS
    words: List[WordScore] = []
    for index, token in enumerate(reference_text.split()):
        accuracy = sample_accuracy(context, rng)
        words.append(
            WordScore(
                word=token,
                accuracy_score=accuracy,
                error_type=ErrorType.MISPRONUNCIATION if accuracy < mispronounced_below else ErrorType.NONE,
                offset=index * SIMULATED_WORD_TICKS,
                duration=SIMULATED_WORD_TICKS,
            )
        )

    if words:
        accuracy = round(sum(w.accuracy_score for w in words) / len(words))
    else:
        accuracy = sample_accuracy(context, rng)
    scores = _scores_from_accuracy(accuracy, rng)
    return SentenceAssessmentResult(
        accuracy_score=scores.accuracy,
        fluency_score=scores.fluency,
        completeness_score=scores.completeness,
        pronunciation_score=scores.pronunciation,
        prosody_score=scores.prosody,
        words=words,
    )


def determine_reading_level(
    word_accuracy: float, fluency: float, completeness: float
) -> ReadingLevel:
    """
    正確性・流暢さ・完全性の加重平均から読解レベルを判定

    Args:
        word_accuracy: 単語の正確性スコア
        fluency: 流暢さスコア
        completeness: 完全性スコア

    Returns:
        読解レベル
    """
    overall = word_accuracy * 0.5 + fluency * 0.3 + completeness * 0.2
    if overall < 75:
        return ReadingLevel.BEGINNER
    if overall < 90:
        return ReadingLevel.INTERMEDIATE
    return ReadingLevel.ADVANCED
