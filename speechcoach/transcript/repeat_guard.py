"""
인식기 반복(loop) 감지 모듈입니다.

역할:
- 최근 확정 조각 히스토리(기본 12개)를 정규화된 형태로 보관
- 단어 집합 Jaccard 유사도로 이미 받은 발화의 재전송 감지
- 확정 텍스트 꼬리 윈도우에 대한 부분 문자열 포함 / 단어 커버리지로
  표현만 조금 바뀐 재전송 감지

짧은 조각("yes yes")은 실제 반복일 수 있으므로 집합 기반 검사는
repeat_min_words 이상인 조각에만 적용합니다.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from speechcoach.config.schema import ReconcilerConfig
from speechcoach.text import normalize_text

logger = logging.getLogger(__name__)


def jaccard_similarity(left: set[str], right: set[str]) -> float:
    """두 단어 집합의 Jaccard 유사도를 반환합니다. 둘 다 비어 있으면 0.0."""
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


class RepeatGuard:
    """
    최근 확정 조각과 확정 텍스트 꼬리를 기준으로 재전송된 final을 걸러냅니다.

    판정 기준 (하나라도 해당하면 반복):
    1. 단어 수 ≥ repeat_min_words 이고 히스토리 항목과의 Jaccard ≥ repeat_similarity_threshold
    2. 정규화된 조각이 확정 텍스트 마지막 tail_window_chars 문자 안에 포함
    3. 단어 수 ≥ repeat_min_words 이고 고유 단어의 tail_coverage_threshold 이상이 꼬리 윈도우에 존재
    """

    def __init__(self, config: Optional[ReconcilerConfig] = None) -> None:
        self._config = config or ReconcilerConfig()
        self._history: deque[str] = deque(maxlen=self._config.repeat_history_size)

    def is_repeat(self, fragment: str, committed_text: str) -> bool:
        """
        fragment가 이미 받아들인 발화의 반복인지 판정합니다.

        파라미터:
            fragment: 새로 도착한 final 텍스트
            committed_text: 현재까지 확정된 트랜스크립트

        반환값:
            bool: 반복이면 True
        """
        normalized = normalize_text(fragment)
        if not normalized:
            return False

        words = normalized.split(" ")
        distinct_words = set(words)
        long_enough = len(words) >= self._config.repeat_min_words

        if long_enough:
            for previous in self._history:
                similarity = jaccard_similarity(distinct_words, set(previous.split(" ")))
                if similarity >= self._config.repeat_similarity_threshold:
                    logger.debug(f"반복 감지 (Jaccard={similarity:.2f}): '{normalized[:40]}'")
                    return True

        tail = normalize_text(committed_text)[-self._config.tail_window_chars:]
        if not tail:
            return False

        if normalized in tail:
            logger.debug(f"반복 감지 (꼬리 윈도우 포함): '{normalized[:40]}'")
            return True

        if long_enough:
            tail_words = set(tail.split(" "))
            coverage = len(distinct_words & tail_words) / len(distinct_words)
            if coverage >= self._config.tail_coverage_threshold:
                logger.debug(f"반복 감지 (꼬리 커버리지={coverage:.2f}): '{normalized[:40]}'")
                return True

        return False

    def remember(self, fragment: str) -> None:
        """받아들인 확정 조각을 히스토리에 추가합니다. 가장 오래된 항목은 자동으로 밀려납니다."""
        normalized = normalize_text(fragment)
        if normalized:
            self._history.append(normalized)

    def update_config(self, config: ReconcilerConfig) -> None:
        """임계값을 교체합니다. 히스토리 크기가 바뀌면 최근 항목부터 유지합니다."""
        self._config = config
        self._history = deque(self._history, maxlen=config.repeat_history_size)

    def reset(self) -> None:
        """히스토리를 비웁니다."""
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)
