"""
트랜스크립트 모듈 패키지

공통 데이터 타입:
- TranscriptSnapshot: 렌더링 계층에 노출하는 트랜스크립트 상태의 불변 복사본
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TranscriptSnapshot:
    """
    TranscriptReconciler 상태의 불변 스냅샷입니다.

    필드:
        committed_text: 지금까지 확정된 트랜스크립트
        pending_partial_text: 아직 확정되지 않은 최신 partial 조각
        word_confidences: committed_text 토큰별 신뢰도 (알 수 없으면 None)
    """
    committed_text: str = ""
    pending_partial_text: str = ""
    word_confidences: tuple[Optional[float], ...] = field(default_factory=tuple)
