"""
STT 모듈 패키지

공통 데이터 타입:
- WordHypothesis: 단어 단위 인식 결과와 신뢰도
- RecognitionEvent: 외부 스트리밍 인식기가 보내는 partial/final 결과
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class WordHypothesis:
    """
    단어 단위 인식 결과입니다.

    필드:
        token: 정규화된 단어 토큰
        confidence: 신뢰도 (0.0~1.0, 알 수 없으면 None)
    """
    token: str
    confidence: Optional[float] = None


@dataclass
class RecognitionEvent:
    """
    외부 인식기에서 수신한 인식 결과 한 건입니다.

    수신 즉시 TranscriptReconciler가 소비하며 보관하지 않습니다.

    필드:
        text: 현재 발화 구간에서 지금까지 인식된 텍스트
        is_final: True이면 인식기가 더 이상 수정하지 않는 확정 결과
        words: 단어 단위 결과 (일부 이벤트에만 존재)
        is_last: 세션 종료(eof) 후 인식기가 보내는 마지막 결과 여부
    """
    text: str
    is_final: bool
    words: list[WordHypothesis] = field(default_factory=list)
    is_last: bool = False
