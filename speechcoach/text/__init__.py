"""
텍스트 정규화 패키지

트랜스크립트 병합과 정렬 점수가 공유하는 정규화/토큰화 함수를 제공합니다.
"""

from speechcoach.text.normalization import (
    align_confidences,
    contains_normalized,
    contains_word_sequence,
    normalize_confidence,
    normalize_text,
    tokenize,
    word_overlap,
)

__all__ = [
    "align_confidences",
    "contains_normalized",
    "contains_word_sequence",
    "normalize_confidence",
    "normalize_text",
    "tokenize",
    "word_overlap",
]
