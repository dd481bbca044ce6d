"""
연습 세션 모듈 패키지

공통 데이터 타입:
- LiveUpdate: 인식 이벤트 처리 후 렌더링 계층에 전달하는 실시간 상태
- SessionResult: 문장 하나의 연습이 끝났을 때의 최종 결과
"""

from dataclasses import dataclass
from typing import Optional

from speechcoach.scoring import AlignmentResult, AttemptDetail
from speechcoach.transcript import TranscriptSnapshot


@dataclass
class LiveUpdate:
    """
    상태를 바꾼 인식 이벤트 한 건에 대한 실시간 갱신입니다.

    필드:
        sequence: 세션 내 갱신 순번 (0부터 시작)
        snapshot: 트랜스크립트 스냅샷
        live_text: 확정 텍스트와 대기 partial을 합친 표시용 텍스트
        alignment: live_text를 기준 문장과 정렬한 결과
        is_final: 이 갱신을 만든 이벤트가 final이었는지 여부
    """
    sequence: int
    snapshot: TranscriptSnapshot
    live_text: str
    alignment: AlignmentResult
    is_final: bool


@dataclass
class SessionResult:
    """
    문장 하나에 대한 최종 연습 결과입니다.

    필드:
        reference: 기준 문장
        snapshot: 대기 partial 승격 후의 최종 스냅샷
        alignment: 확정 텍스트의 최종 정렬 결과
        hint: 코칭 팁 (불일치가 없으면 None)
        attempt: SessionEvaluator에 기록된 시도 (기록하지 않았으면 None)
    """
    reference: str
    snapshot: TranscriptSnapshot
    alignment: AlignmentResult
    hint: Optional[str] = None
    attempt: Optional[AttemptDetail] = None
