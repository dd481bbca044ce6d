"""
발음 정확도 채점 모듈입니다.

역할:
- 기준 문장과 가설(실시간/확정 트랜스크립트)의 단어 정렬
- 토큰별 match/substitution/insertion 판정과 불일치 목록 생성
- 0~100 정확도 점수 계산

점수 계산:
    base  = matches / max(1, 기준 토큰 수)
    score = 100 * base ** accuracy_exponent
    confidence_weighting이 켜져 있고 match 토큰 중 신뢰도를 아는 것이 있으면
    score *= confidence_floor + (1 - confidence_floor) * 평균 신뢰도
    결과는 반올림한 정수이며 base 기준 점수를 넘지 않습니다.

상태를 가지지 않는 순수 함수이므로 여러 스레드/코루틴에서 동시에 호출해도 안전합니다.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from speechcoach.config.schema import ScoringConfig
from speechcoach.scoring import AlignmentResult, Mismatch, ScoredToken
from speechcoach.scoring.alignment import backtrace, compute_edit_matrix
from speechcoach.text import align_confidences, normalize_confidence, tokenize

logger = logging.getLogger(__name__)


def align(
    reference: str,
    hypothesis: str,
    hypothesis_confidences: Optional[Sequence[object]] = None,
    config: Optional[ScoringConfig] = None,
) -> AlignmentResult:
    """
    기준 문장 대비 가설을 단어 단위로 정렬하고 채점합니다.

    파라미터:
        reference: 기준(연습) 문장
        hypothesis: 인식된 텍스트
        hypothesis_confidences: 가설 토큰별 신뢰도 (0~1 또는 0~100, 없으면 알 수 없음)
        config: 점수 곡선/신뢰도 가중치 설정 (없으면 기본값)

    반환값:
        AlignmentResult: 토큰 판정, 정확도, 불일치 목록
    """
    config = config or ScoringConfig()
    reference_tokens = tokenize(reference)
    hypothesis_tokens = tokenize(hypothesis)

    if not reference_tokens:
        return AlignmentResult()

    confidences = [
        normalize_confidence(value)
        for value in align_confidences(
            len(hypothesis_tokens),
            [] if hypothesis_confidences is None else hypothesis_confidences,
        )
    ]

    matrix = compute_edit_matrix(reference_tokens, hypothesis_tokens)
    operations = backtrace(reference_tokens, hypothesis_tokens, matrix)

    tokens: list[ScoredToken] = []
    mismatches: list[Mismatch] = []
    matched_confidences: list[float] = []
    matches = 0
    ref_index = 0
    hyp_index = 0

    for operation in operations:
        if operation == "deletion":
            mismatches.append(Mismatch(reference_word=reference_tokens[ref_index]))
            ref_index += 1
            continue

        word = hypothesis_tokens[hyp_index]
        confidence = confidences[hyp_index]

        if operation == "match":
            matches += 1
            if confidence is not None:
                matched_confidences.append(confidence)
            ref_index += 1
        elif operation == "substitution":
            mismatches.append(Mismatch(
                reference_word=reference_tokens[ref_index],
                hypothesis_word=word,
            ))
            ref_index += 1
        else:
            mismatches.append(Mismatch(hypothesis_word=word))

        tokens.append(ScoredToken(word=word, status=operation, confidence=confidence))
        hyp_index += 1

    accuracy = compute_accuracy(matches, len(reference_tokens), matched_confidences, config)
    logger.debug(
        f"정렬 완료: ref={len(reference_tokens)}, hyp={len(hypothesis_tokens)}, "
        f"matches={matches}, mismatches={len(mismatches)}, accuracy={accuracy}"
    )
    return AlignmentResult(tokens=tokens, accuracy=accuracy, mismatches=mismatches)


def compute_accuracy(
    matches: int,
    reference_count: int,
    matched_confidences: Sequence[float],
    config: ScoringConfig,
) -> int:
    """
    match 수와 match 토큰 신뢰도로 0~100 정수 점수를 계산합니다.

    match 비율에 대해 단조 비감소이며, 신뢰도 가중치는 점수를 낮추기만 합니다.
    """
    if reference_count <= 0:
        return 0

    base = min(1.0, matches / max(1, reference_count))
    score = 100.0 * base ** config.accuracy_exponent

    if config.confidence_weighting and matched_confidences:
        average = sum(matched_confidences) / len(matched_confidences)
        floor = config.confidence_floor
        score *= floor + (1.0 - floor) * average

    return int(round(max(0.0, min(100.0, score))))
