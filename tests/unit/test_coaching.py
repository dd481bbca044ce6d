"""
코칭 힌트 / 저신뢰 단어 단위 테스트

검증 항목:
- 불일치가 없으면 None
- 규칙 테이블 첫 일치 (불일치 순서 우선, 그다음 규칙 순서)
- 규칙에 맞지 않으면 일반 격려 문구
- 삽입/삭제 불일치는 규칙 비교 대상이 아님
- 저신뢰 단어 정렬과 개수 제한
"""

from __future__ import annotations

import pytest

from speechcoach.scoring import Mismatch
from speechcoach.scoring.coaching import (
    COACHING_RULES,
    DEFAULT_GENERIC_HINT,
    extract_low_confidence_words,
    pick_coaching_hint,
)
from speechcoach.scoring.scorer import align


class TestPickCoachingHint:
    def test_no_mismatches_returns_none(self):
        assert pick_coaching_hint([]) is None

    @pytest.mark.parametrize("reference,hypothesis,fragment", [
        ("the", "de", "/ð/"),
        ("very", "wery", "/v/"),
        ("light", "right", "/l/"),
        ("singing", "singin", "/ŋ/"),
        ("fine", "pine", "/f/"),
    ])
    def test_each_rule(self, reference, hypothesis, fragment):
        hint = pick_coaching_hint([Mismatch(reference_word=reference, hypothesis_word=hypothesis)])
        assert hint is not None
        assert fragment in hint

    def test_unmatched_mismatch_returns_generic(self):
        hint = pick_coaching_hint([Mismatch(reference_word="cat", hypothesis_word="dog")])
        assert hint == DEFAULT_GENERIC_HINT

    def test_custom_generic_hint(self):
        hint = pick_coaching_hint([Mismatch(reference_word="cat")], generic_hint="keep going")
        assert hint == "keep going"

    def test_insertions_and_deletions_do_not_match_rules(self):
        mismatches = [Mismatch(reference_word="the"), Mismatch(hypothesis_word="de")]
        assert pick_coaching_hint(mismatches) == DEFAULT_GENERIC_HINT

    def test_first_mismatch_wins_over_rule_order(self):
        mismatches = [
            Mismatch(reference_word="light", hypothesis_word="right"),
            Mismatch(reference_word="this", hypothesis_word="dis"),
        ]
        assert pick_coaching_hint(mismatches) == COACHING_RULES[2].tip

    def test_rule_order_breaks_ties_within_one_mismatch(self):
        # "thing" -> "din"은 th->d 와 ing->in 둘 다 해당
        hint = pick_coaching_hint([Mismatch(reference_word="thing", hypothesis_word="din")])
        assert hint == COACHING_RULES[0].tip

    def test_works_on_alignment_result(self):
        result = align("I think so", "I dink so")
        assert pick_coaching_hint(result.mismatches) == COACHING_RULES[0].tip

    def test_perfect_alignment_has_no_hint(self):
        assert pick_coaching_hint(align("very good", "very good").mismatches) is None


class TestLowConfidenceWords:
    def test_sorted_ascending_with_unknown_last(self):
        words = extract_low_confidence_words("alpha beta gamma delta", [0.9, None, 0.2, 0.5])
        assert words == [("gamma", 0.2), ("delta", 0.5), ("alpha", 0.9), ("beta", None)]

    def test_limit(self):
        text = " ".join(f"w{i}" for i in range(12))
        words = extract_low_confidence_words(text, [i / 20 for i in range(12)], limit=8)
        assert len(words) == 8
        assert words[0] == ("w0", 0.0)

    def test_short_confidences_are_unknown(self):
        words = extract_low_confidence_words("one two", [0.3])
        assert words == [("one", 0.3), ("two", None)]

    def test_empty(self):
        assert extract_low_confidence_words("", []) == []
        assert extract_low_confidence_words("hello", [0.1], limit=0) == []
