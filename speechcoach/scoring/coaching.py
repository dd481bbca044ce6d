"""
발음 코칭 힌트 모듈입니다.

역할:
- 불일치(기준 단어 / 인식 단어) 쌍에서 흔한 제2언어 발음 혼동 패턴을 찾아 팁 반환
- 확정 트랜스크립트에서 신뢰도가 낮은 단어 목록 추출

규칙 테이블은 순서가 곧 우선순위입니다. 점수로 순위를 매기지 않고
불일치를 앞에서부터 보면서 처음 일치한 규칙의 팁을 반환합니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from speechcoach.scoring import Mismatch
from speechcoach.text import align_confidences, tokenize

DEFAULT_GENERIC_HINT = (
    "Good effort! Listen to the sentence again and repeat the highlighted words slowly."
)


@dataclass(frozen=True)
class CoachingRule:
    """기준 단어 정규식 / 인식 단어 정규식 / 팁 문구 한 묶음입니다."""
    reference_pattern: re.Pattern
    hypothesis_pattern: re.Pattern
    tip: str

    def matches(self, mismatch: Mismatch) -> bool:
        if not mismatch.reference_word or not mismatch.hypothesis_word:
            return False
        return bool(
            self.reference_pattern.search(mismatch.reference_word)
            and self.hypothesis_pattern.search(mismatch.hypothesis_word)
        )


COACHING_RULES: tuple[CoachingRule, ...] = (
    CoachingRule(
        re.compile(r"^th"),
        re.compile(r"^d"),
        "Possible /ð/ → /d/ substitution; place tongue lightly behind upper teeth.",
    ),
    CoachingRule(
        re.compile(r"^v"),
        re.compile(r"^w"),
        "Possible /v/ → /w/; touch upper teeth to lower lip and voice the sound.",
    ),
    CoachingRule(
        re.compile(r"^l"),
        re.compile(r"^r"),
        "Possible /l/ → /r/; keep tongue tip on alveolar ridge to avoid retroflex /r/.",
    ),
    CoachingRule(
        re.compile(r"ing$"),
        re.compile(r"in$"),
        "Possible /ŋ/ → /n/; lift tongue back to seal the soft palate for /ŋ/.",
    ),
    CoachingRule(
        re.compile(r"^f"),
        re.compile(r"^p"),
        "Possible /f/ → /p/; let air flow between upper teeth and lower lip instead of closing the lips.",
    ),
)


def pick_coaching_hint(
    mismatches: Sequence[Mismatch],
    generic_hint: str = DEFAULT_GENERIC_HINT,
    rules: Sequence[CoachingRule] = COACHING_RULES,
) -> Optional[str]:
    """
    불일치 목록에 맞는 코칭 팁을 고릅니다.

    파라미터:
        mismatches: AlignmentResult.mismatches
        generic_hint: 규칙에 맞는 불일치가 없을 때 반환할 문구
        rules: 순서대로 검사할 규칙 테이블

    반환값:
        Optional[str]: 첫 번째로 일치한 규칙의 팁, 없으면 generic_hint,
            불일치가 하나도 없으면 None
    """
    if not mismatches:
        return None

    for mismatch in mismatches:
        for rule in rules:
            if rule.matches(mismatch):
                return rule.tip
    return generic_hint


def extract_low_confidence_words(
    text: str,
    confidences: Sequence[Optional[float]],
    limit: int = 8,
) -> list[tuple[str, Optional[float]]]:
    """
    트랜스크립트 토큰을 신뢰도 오름차순으로 정렬하여 앞에서부터 limit개를 반환합니다.

    신뢰도를 모르는 토큰(None)은 1.0으로 간주하여 맨 뒤로 보냅니다.
    같은 신뢰도끼리는 원래 순서를 유지합니다.
    """
    if limit <= 0:
        return []
    tokens = tokenize(text)
    aligned = align_confidences(len(tokens), confidences)
    pairs = list(zip(tokens, aligned))
    pairs.sort(key=lambda pair: 1.0 if pair[1] is None else pair[1])
    return pairs[:limit]
