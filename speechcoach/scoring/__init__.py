"""
채점 모듈 패키지

공통 데이터 타입:
- ScoredToken: 화면 색칠용 가설 토큰과 판정 결과
- Mismatch: 기준/가설 단어 불일치 한 건
- AlignmentResult: 단어 정렬 결과와 0~100 정확도
- AttemptDetail / PracticeReport: 세션 단위 연습 리포트
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

TokenStatus = Literal["match", "substitution", "insertion"]


@dataclass(frozen=True)
class ScoredToken:
    """
    정렬된 가설 토큰 하나입니다.

    필드:
        word: 가설(인식된) 단어
        status: match / substitution / insertion
        confidence: 정규화된 인식 신뢰도 (알 수 없으면 None)
    """
    word: str
    status: TokenStatus
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Mismatch:
    """
    불일치 한 건입니다.

    substitution은 두 단어 모두, insertion은 hypothesis_word만,
    deletion은 reference_word만 가집니다.
    """
    reference_word: Optional[str] = None
    hypothesis_word: Optional[str] = None


@dataclass
class AlignmentResult:
    """
    기준 문장과 가설의 단어 정렬 결과입니다.

    필드:
        tokens: 가설 순서대로 정렬된 토큰 (deletion은 토큰 없음)
        accuracy: 0~100 정수 점수
        mismatches: substitution/insertion/deletion 순서 목록
    """
    tokens: list[ScoredToken] = field(default_factory=list)
    accuracy: int = 0
    mismatches: list[Mismatch] = field(default_factory=list)


@dataclass
class AttemptDetail:
    """연습 시도 한 건의 채점 상세입니다."""
    reference: str
    hypothesis: str
    accuracy: int
    wer: float
    cer: float
    mismatches: list[Mismatch] = field(default_factory=list)
    hint: Optional[str] = None
    low_confidence_words: list[tuple[str, Optional[float]]] = field(default_factory=list)


@dataclass
class PracticeReport:
    """
    연습 세션 리포트입니다.

    필드:
        session_id: 세션 식별자
        duration_sec: 세션 총 시간 (초)
        attempt_count: 채점된 시도 수
        mean_accuracy: 시도별 정확도 평균 (0~100)
        wer: 전체 단어 오류율
        cer: 전체 문자 오류율
        attempts: 시도별 상세 목록
    """
    session_id: str
    duration_sec: float
    attempt_count: int
    mean_accuracy: float
    wer: float
    cer: float
    attempts: list[AttemptDetail] = field(default_factory=list)
