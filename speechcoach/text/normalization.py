"""
텍스트 정규화 및 토큰화 공통 유틸리티입니다.

역할:
- 비교용 정규화: 소문자화, 단어 문자/아포스트로피/공백 외 문자를 공백으로 치환, 공백 축약
- 공백 기준 토큰화
- 정규화 후 부분 문자열 포함 검사
- 인식 신뢰도 정규화 (0~100 스케일 자동 감지, [0, 1] 클램프)
- 토큰 배열 포함/겹침 검사와 신뢰도 배열 길이 맞춤

TranscriptReconciler와 AlignmentScorer가 같은 토큰 경계를 공유하도록
모든 토큰화는 이 모듈을 통해서만 수행합니다.
"""

from __future__ import annotations

import math
import numbers
import re
from typing import Optional, Sequence

_NON_WORD_RE = re.compile(r"[^\w\s']")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """
    비교용으로 텍스트를 정규화합니다.

    예: "Hello,  World!" -> "hello world", "Don't" -> "don't"
    """
    lowered = text.lower()
    replaced = _NON_WORD_RE.sub(" ", lowered)
    return _WHITESPACE_RE.sub(" ", replaced).strip()


def tokenize(text: str) -> list[str]:
    """정규화된 텍스트를 공백 기준 토큰 목록으로 분할합니다."""
    normalized = normalize_text(text)
    return normalized.split(" ") if normalized else []


def contains_normalized(container: str, content: str) -> bool:
    """정규화 후 content가 container의 부분 문자열인지 확인합니다. 어느 쪽이든 비어 있으면 False."""
    normalized_container = normalize_text(container)
    normalized_content = normalize_text(content)
    if not normalized_container or not normalized_content:
        return False
    return normalized_content in normalized_container


def normalize_confidence(value: object) -> Optional[float]:
    """
    인식 서비스가 보낸 신뢰도 값을 [0, 1] 범위로 정규화합니다.

    - 실수(numpy 스칼라 포함)가 아니거나 NaN이면 None (알 수 없음, 0점으로 취급하지 않음)
    - 1보다 크면 0~100 스케일로 간주하여 100으로 나눔
    - 결과는 [0, 1]로 클램프
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if math.isnan(value):
        return None
    confidence = float(value)
    if confidence > 1:
        confidence = confidence / 100
    return max(0.0, min(1.0, confidence))


def contains_word_sequence(container: Sequence[str], content: Sequence[str]) -> bool:
    """content가 container 안에 연속된 부분 시퀀스로 존재하는지 확인합니다."""
    if not container or not content or len(content) > len(container):
        return False
    content_list = list(content)
    size = len(content_list)
    for start in range(len(container) - size + 1):
        if list(container[start:start + size]) == content_list:
            return True
    return False


def word_overlap(previous: Sequence[str], incoming: Sequence[str]) -> int:
    """
    previous의 꼬리와 incoming의 머리가 일치하는 가장 긴 토큰 수를 반환합니다.

    긴 겹침부터 줄여가며 검사하는 탐욕적 방식이며, 겹침이 없으면 0입니다.
    """
    for size in range(min(len(previous), len(incoming)), 0, -1):
        if list(previous[-size:]) == list(incoming[:size]):
            return size
    return 0


def align_confidences(length: int, confidences: Sequence[Optional[float]]) -> list[Optional[float]]:
    """신뢰도 배열을 length에 맞게 자르거나 None으로 오른쪽을 채웁니다."""
    if length < 0:
        raise ValueError(f"length는 0 이상이어야 합니다. 입력값: {length}")
    aligned = list(confidences[:length])
    aligned.extend([None] * (length - len(aligned)))
    return aligned
