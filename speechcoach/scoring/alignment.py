"""
단어 단위 편집 거리(Levenshtein) 정렬 모듈입니다.

역할:
- (n+1) x (m+1) 편집 거리 행렬 계산 (치환/삽입/삭제 비용 1, 같은 토큰 0)
- (n, m)에서 (0, 0)까지 역추적하여 순방향 연산 시퀀스 생성

역추적 우선순위 (셀마다): match -> substitution -> insertion -> deletion
같은 입력이면 항상 같은 연산 시퀀스를 반환합니다.
"""

from __future__ import annotations

from typing import Literal, Sequence

import numpy as np

EditOperation = Literal["match", "substitution", "insertion", "deletion"]


def compute_edit_matrix(reference: Sequence[str], hypothesis: Sequence[str]) -> np.ndarray:
    """
    두 토큰 시퀀스의 편집 거리 행렬을 계산합니다.

    파라미터:
        reference: 기준 토큰 (행, 길이 n)
        hypothesis: 가설 토큰 (열, 길이 m)

    반환값:
        np.ndarray: (n+1, m+1) int 행렬. matrix[n, m]이 전체 편집 거리
    """
    rows = len(reference) + 1
    cols = len(hypothesis) + 1
    matrix = np.zeros((rows, cols), dtype=np.int32)
    matrix[:, 0] = np.arange(rows)
    matrix[0, :] = np.arange(cols)

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if reference[i - 1] == hypothesis[j - 1] else 1
            matrix[i, j] = min(
                matrix[i - 1, j - 1] + cost,
                matrix[i, j - 1] + 1,
                matrix[i - 1, j] + 1,
            )
    return matrix


def backtrace(
    reference: Sequence[str],
    hypothesis: Sequence[str],
    matrix: np.ndarray,
) -> list[EditOperation]:
    """
    편집 거리 행렬을 역추적하여 순방향 연산 목록을 반환합니다.

    insertion은 가설 토큰 하나, deletion은 기준 토큰 하나를 소비하고
    match/substitution은 둘 다 하나씩 소비합니다.
    """
    operations: list[EditOperation] = []
    i, j = len(reference), len(hypothesis)

    while i > 0 or j > 0:
        current = matrix[i, j]
        if i > 0 and j > 0:
            if reference[i - 1] == hypothesis[j - 1] and current == matrix[i - 1, j - 1]:
                operations.append("match")
                i, j = i - 1, j - 1
                continue
            if current == matrix[i - 1, j - 1] + 1:
                operations.append("substitution")
                i, j = i - 1, j - 1
                continue
        if j > 0 and current == matrix[i, j - 1] + 1:
            operations.append("insertion")
            j -= 1
            continue
        operations.append("deletion")
        i -= 1

    operations.reverse()
    return operations
