"""
트랜스크립트 병합 프리미티브 단위 테스트

검증 항목:
- 같은 텍스트 병합은 변화 없음
- 정규화 포함 흡수 (재전송) / 소급 확장
- 접두 확장, 최장 겹침 스플라이스, 겹침 없음 연결
- 병합 결과 토큰 수는 줄지 않음
- 신뢰도 병합이 단어 경계에서만 이어붙임
- 단어 중간 스플라이스 시 신뢰도 재배치
"""

from __future__ import annotations

import pytest

from speechcoach.stt import WordHypothesis
from speechcoach.text import tokenize
from speechcoach.transcript.merge import (
    fit_confidences,
    merge_transcript,
    merge_word_confidences,
    words_from_text,
)


def _words(*pairs: tuple[str, float]) -> list[WordHypothesis]:
    """(토큰, 신뢰도) 쌍으로 WordHypothesis 목록을 만듭니다."""
    return [WordHypothesis(token=token, confidence=conf) for token, conf in pairs]


# =========================================================================
# merge_transcript
# =========================================================================

class TestMergeTranscript:
    @pytest.mark.parametrize("text", ["hello", "the quick brown fox", "Don't stop, please!"])
    def test_same_text_is_unchanged(self, text):
        assert merge_transcript(text, text) == text

    def test_empty_sides(self):
        assert merge_transcript("", "hello there") == "hello there"
        assert merge_transcript("hello there", "   ") == "hello there"

    @pytest.mark.parametrize("previous,incoming", [
        ("The quick brown fox jumps", "quick brown"),
        ("The quick brown fox jumps", "QUICK, BROWN!"),
        ("Hello world.", "hello world"),
        ("one two three", "three"),
    ])
    def test_contained_fragment_is_absorbed(self, previous, incoming):
        assert merge_transcript(previous, incoming) == previous

    def test_retroactive_expansion_adopts_superset(self):
        assert merge_transcript("quick brown", "the quick brown fox") == "the quick brown fox"

    def test_prefix_extension(self):
        assert merge_transcript("the quick", "the quick brown fox") == "the quick brown fox"

    def test_overlap_splice(self):
        merged = merge_transcript("the quick brown", "brown fox jumps")
        assert merged == "the quick brown fox jumps"

    def test_overlap_splice_is_case_insensitive(self):
        merged = merge_transcript("I saw the Quick", "quick fox")
        assert merged == "I saw the Quick fox"

    def test_mid_word_overlap_splice(self):
        assert merge_transcript("hello wor", "world peace") == "hello world peace"

    def test_no_overlap_joins_with_single_space(self):
        assert merge_transcript("good morning", "how are you") == "good morning how are you"

    @pytest.mark.parametrize("previous,incoming", [
        ("the quick brown fox", "fox"),
        ("the quick brown fox", "jumps over"),
        ("hello wor", "world peace"),
        ("a b c", "c d e"),
        ("a b c", ""),
        ("", "a b"),
        ("one", "one two three"),
        ("x y z", "totally different words here"),
    ])
    def test_token_count_never_shrinks(self, previous, incoming):
        merged = merge_transcript(previous, incoming)
        assert len(tokenize(merged)) >= len(tokenize(previous))


# =========================================================================
# merge_word_confidences
# =========================================================================

class TestMergeWordConfidences:
    def test_empty_previous_adopts_incoming(self):
        result = merge_word_confidences("", [], _words(("hello", 0.9), ("world", 0.8)))
        assert result == [0.9, 0.8]

    def test_contained_incoming_keeps_previous(self):
        result = merge_word_confidences(
            "the quick brown fox",
            [0.9, 0.8, 0.7, 0.6],
            _words(("quick", 0.1), ("brown", 0.1)),
        )
        assert result == [0.9, 0.8, 0.7, 0.6]

    def test_superset_incoming_replaces(self):
        result = merge_word_confidences(
            "quick brown",
            [0.5, 0.5],
            _words(("the", 0.9), ("quick", 0.8), ("brown", 0.7), ("fox", 0.6)),
        )
        assert result == [0.9, 0.8, 0.7, 0.6]

    def test_overlap_drops_duplicated_head(self):
        result = merge_word_confidences(
            "the quick brown",
            [0.9, 0.8, 0.7],
            _words(("brown", 0.1), ("fox", 0.6)),
        )
        assert result == [0.9, 0.8, 0.7, 0.6]

    def test_no_overlap_concatenates(self):
        result = merge_word_confidences("good morning", [0.9, 0.8], _words(("hi", 0.5)))
        assert result == [0.9, 0.8, 0.5]

    def test_short_previous_confidences_are_padded(self):
        result = merge_word_confidences("one two three", [0.9], _words(("four", 0.4)))
        assert result == [0.9, None, None, 0.4]

    def test_long_previous_confidences_are_truncated(self):
        result = merge_word_confidences("one", [0.9, 0.8, 0.7], _words(("two", 0.4)))
        assert result == [0.9, 0.4]

    def test_matches_merged_token_count_on_word_boundaries(self):
        previous = "the quick brown"
        incoming = "brown fox jumps"
        merged = merge_transcript(previous, incoming)
        confidences = merge_word_confidences(previous, [0.9, 0.8, 0.7], words_from_text(incoming))
        assert len(confidences) == len(tokenize(merged))


# =========================================================================
# fit_confidences
# =========================================================================

class TestFitConfidences:
    def test_mid_word_splice_keeps_outer_confidences(self):
        result = fit_confidences(
            tokenize("hello world peace"),
            tokenize("hello wor"),
            [0.9, 0.3],
            _words(("world", 0.8), ("peace", 0.7)),
        )
        assert result == [0.9, 0.8, 0.7]

    def test_rewritten_boundary_tokens_are_unknown(self):
        result = fit_confidences(
            ["alpha", "betagamma", "delta"],
            ["alpha", "beta"],
            [0.9, 0.5],
            _words(("gamma", 0.4), ("delta", 0.6)),
        )
        assert result == [0.9, None, 0.6]

    def test_length_always_matches_merged_tokens(self):
        merged = ["a", "b", "c"]
        result = fit_confidences(merged, ["a", "b", "c", "d"], [0.1, 0.2, 0.3, 0.4], [])
        assert len(result) == len(merged)


def test_words_from_text_has_unknown_confidence():
    words = words_from_text("Hello, world!")
    assert [w.token for w in words] == ["hello", "world"]
    assert all(w.confidence is None for w in words)
