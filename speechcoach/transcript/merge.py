"""
트랜스크립트 병합 프리미티브 모듈입니다.

역할:
- 텍스트 병합: 포함 흡수, 접두 확장, 최장 겹침 스플라이스 (문자 단위, 대소문자 무시)
- 신뢰도 병합: 같은 탐욕적 겹침을 토큰 배열에 적용하여 단어 경계에서만 이어붙임
- 문자 단위 스플라이스가 단어 중간에서 일어나 두 결과의 토큰 수가 어긋나면
  병합된 토큰에 신뢰도를 다시 맞춤 (fit_confidences)

네트워크 메시지마다 호출되므로 전체 시퀀스 정렬 대신 O(n²) 이하의 탐욕적 겹침만 사용합니다.
"""

from __future__ import annotations

from typing import Optional, Sequence

from speechcoach.stt import WordHypothesis
from speechcoach.text import (
    align_confidences,
    contains_word_sequence,
    normalize_text,
    tokenize,
    word_overlap,
)


def merge_transcript(previous: str, incoming: str) -> str:
    """
    기존 트랜스크립트에 새 조각을 병합합니다.

    규칙 (위에서부터 먼저 해당하는 규칙 적용):
    1. 한쪽이 비어 있으면 다른 쪽
    2. 같으면 그대로
    3. incoming이 정규화 기준으로 previous에 포함되면 previous (재전송)
    4. previous가 정규화 기준으로 incoming에 포함되면 incoming (소급 확장)
    5. 한쪽이 다른 쪽의 문자열 접두 확장이면 긴 쪽
    6. previous 꼬리 / incoming 머리의 최장 겹침(대소문자 무시)으로 이어붙임
    7. 겹침이 없으면 공백 하나로 연결

    파라미터:
        previous: 지금까지 확정된 텍스트
        incoming: 새로 도착한 조각

    반환값:
        str: 병합된 텍스트 (토큰 수는 previous보다 줄지 않음)
    """
    previous = previous.strip()
    incoming = incoming.strip()

    if not previous:
        return incoming
    if not incoming:
        return previous
    if previous == incoming:
        return previous

    normalized_previous = normalize_text(previous)
    normalized_incoming = normalize_text(incoming)

    if normalized_incoming in normalized_previous:
        return previous
    if normalized_previous in normalized_incoming:
        return incoming

    if incoming.startswith(previous):
        return incoming
    if previous.startswith(incoming):
        return previous

    lowered_previous = previous.lower()
    lowered_incoming = incoming.lower()
    for size in range(min(len(previous), len(incoming)), 0, -1):
        if lowered_previous[-size:] == lowered_incoming[:size]:
            return previous + incoming[size:]

    return f"{previous} {incoming}"


def merge_word_confidences(
    previous_text: str,
    previous_confidences: Sequence[Optional[float]],
    incoming_words: Sequence[WordHypothesis],
) -> list[Optional[float]]:
    """
    기존 신뢰도 배열에 새 조각의 단어 신뢰도를 병합합니다.

    처리 순서:
    1. previous_confidences를 previous_text 토큰 수에 맞춤 (자르기 / None 채우기)
    2. incoming 단어열이 previous 안에 연속으로 있으면 기존 신뢰도 유지
    3. previous 단어열이 incoming 안에 있으면 incoming 신뢰도로 교체
    4. 그 외에는 토큰 단위 최장 꼬리/머리 겹침만큼 incoming 앞부분을 버리고 이어붙임

    반환값:
        list[Optional[float]]: 병합된 신뢰도 배열
    """
    previous_words = tokenize(previous_text)
    previous_aligned = align_confidences(len(previous_words), previous_confidences)
    incoming_tokens = [word.token for word in incoming_words]
    incoming_confidences = [word.confidence for word in incoming_words]

    if not previous_words:
        return incoming_confidences
    if not incoming_tokens:
        return previous_aligned

    if contains_word_sequence(previous_words, incoming_tokens):
        return previous_aligned
    if contains_word_sequence(incoming_tokens, previous_words):
        return incoming_confidences

    overlap = word_overlap(previous_words, incoming_tokens)
    return previous_aligned + incoming_confidences[overlap:]


def fit_confidences(
    merged_tokens: Sequence[str],
    previous_tokens: Sequence[str],
    previous_confidences: Sequence[Optional[float]],
    incoming_words: Sequence[WordHypothesis],
) -> list[Optional[float]]:
    """
    병합된 토큰 배열에 정확히 한 개씩 신뢰도를 배정합니다.

    previous와 공통인 최장 접두 토큰은 기존 신뢰도를, incoming과 공통인 최장
    접미 토큰은 새 신뢰도를 받고, 그 사이에서 다시 쓰인 경계 토큰은 None이 됩니다.
    예: "hello wor" + "world peace" -> "hello world peace" -> [c_hello, c_world, c_peace]
    """
    previous_aligned = align_confidences(len(previous_tokens), previous_confidences)

    prefix = 0
    while (
        prefix < len(merged_tokens)
        and prefix < len(previous_tokens)
        and merged_tokens[prefix] == previous_tokens[prefix]
    ):
        prefix += 1

    suffix = 0
    max_suffix = min(len(merged_tokens) - prefix, len(incoming_words))
    while (
        suffix < max_suffix
        and merged_tokens[-1 - suffix] == incoming_words[-1 - suffix].token
    ):
        suffix += 1

    middle = len(merged_tokens) - prefix - suffix
    tail = [word.confidence for word in incoming_words[len(incoming_words) - suffix:]]
    return previous_aligned[:prefix] + [None] * middle + tail


def words_from_text(text: str) -> list[WordHypothesis]:
    """텍스트 토큰마다 신뢰도를 알 수 없는(None) WordHypothesis를 만듭니다."""
    return [WordHypothesis(token=token) for token in tokenize(text)]
