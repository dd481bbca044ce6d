"""
speechcoach 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 config.yaml의 전체 구조를 타입 안전하게 정의
- 각 섹션(system, reconciler, scoring, coaching, audio, practice)을
  독립적인 중첩 모델로 분리하여 유지보수성 확보
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from speechcoach.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.reconciler.repeat_min_words)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, field_validator

# 모듈 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    시스템 전역 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="json", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="output/logs", description="로그 저장 디렉토리")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        allowed_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        # 대소문자 구분 없이 비교 후 대문자로 정규화
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            error_message = f"log_level은 {allowed_levels} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value


# =============================================================================
# reconciler 섹션: 트랜스크립트 병합 및 반복 억제 설정
# =============================================================================

class ReconcilerConfig(BaseModel):
    """
    TranscriptReconciler의 반복(loop) 감지 파라미터입니다.

    역할:
    - 최근 확정(final) 조각 히스토리 크기 지정
    - 단어 집합 Jaccard 유사도 임계값 및 최소 단어 수 게이트
    - 확정 텍스트 꼬리 윈도우 크기와 단어 커버리지 임계값

    임계값은 경험적으로 정한 값이므로 운영 중 핫스왑으로 조정할 수 있습니다.
    """
    # 반복 비교에 사용할 최근 final 조각 수
    repeat_history_size: int = Field(default=12, description="final 히스토리 크기")
    # 단어 집합 Jaccard 유사도가 이 값 이상이면 반복으로 간주
    repeat_similarity_threshold: float = Field(default=0.9, description="반복 판정 Jaccard 임계값")
    # 이 단어 수 미만의 조각은 집합 유사도 검사를 건너뜀 ("yes yes" 같은 짧은 반복 보호)
    repeat_min_words: int = Field(default=8, description="집합 유사도 검사 최소 단어 수")
    # 포함 여부를 검사할 확정 텍스트 꼬리 길이 (정규화 문자 수)
    tail_window_chars: int = Field(default=400, description="꼬리 윈도우 문자 수")
    # 고유 단어 중 꼬리 윈도우에 이미 있는 비율이 이 값 이상이면 반복으로 간주
    tail_coverage_threshold: float = Field(default=0.85, description="꼬리 윈도우 단어 커버리지 임계값")

    @field_validator("repeat_history_size", "repeat_min_words", "tail_window_chars")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """크기 값이 1 이상인지 검증합니다."""
        if value < 1:
            raise ValueError(f"값은 1 이상이어야 합니다. 입력값: {value}")
        return value

    @field_validator("repeat_similarity_threshold", "tail_coverage_threshold")
    @classmethod
    def validate_ratio(cls, value: float) -> float:
        """비율 값이 0.0~1.0 범위인지 검증합니다."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"비율은 0.0~1.0 범위여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# scoring 섹션: 정확도 점수 설정
# =============================================================================

class ScoringConfig(BaseModel):
    """
    AlignmentScorer 정확도 점수 재성형(reshaping) 설정입니다.

    역할:
    - 일치율에 적용할 거듭제곱 곡선 지수 지정
    - 일치 토큰 평균 신뢰도 가중치 활성화 및 하한 지정

    점수 = 100 × (일치율 ** accuracy_exponent) × 신뢰도 배율
    신뢰도 배율 = confidence_floor + (1 - confidence_floor) × 평균 신뢰도
    """
    # 일치율 거듭제곱 지수 (1.0 = 선형, 1보다 크면 엄격)
    accuracy_exponent: float = Field(default=1.0, description="일치율 거듭제곱 지수")
    # 일치 토큰 신뢰도 가중치 사용 여부
    confidence_weighting: bool = Field(default=True, description="신뢰도 가중치 사용 여부")
    # 신뢰도 배율 하한 (평균 신뢰도 0일 때의 배율)
    confidence_floor: float = Field(default=0.7, description="신뢰도 배율 하한 (0.0~1.0)")

    @field_validator("accuracy_exponent")
    @classmethod
    def validate_exponent(cls, value: float) -> float:
        """지수가 양수인지 검증합니다. 0 이하는 단조성을 깨뜨립니다."""
        if value <= 0:
            raise ValueError(f"accuracy_exponent는 0보다 커야 합니다. 입력값: {value}")
        return value

    @field_validator("confidence_floor")
    @classmethod
    def validate_floor(cls, value: float) -> float:
        """배율 하한이 0.0~1.0 범위인지 검증합니다."""
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"confidence_floor는 0.0~1.0 범위여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# coaching 섹션: 코칭 힌트 설정
# =============================================================================

class CoachingConfig(BaseModel):
    """코칭 힌트 및 저신뢰 단어 추출 설정입니다."""
    # 저신뢰 단어 목록 최대 길이
    max_low_confidence_words: int = Field(default=8, description="저신뢰 단어 최대 개수")
    # 규칙에 해당하지 않는 불일치가 있을 때 반환할 일반 격려 문구
    generic_hint: str = Field(
        default="Good effort! Listen to the sentence again and repeat the highlighted words slowly.",
        description="일반 격려 문구",
    )


# =============================================================================
# audio 섹션: PCM 변환 설정
# =============================================================================

class AudioConfig(BaseModel):
    """
    인식 서비스로 전송할 PCM 포맷 설정입니다.

    역할:
    - 마이크 float32 샘플을 16bit PCM으로 변환할 때의 샘플링레이트 지정
    """
    # 인식 서비스 입력 샘플링레이트 (Hz)
    sample_rate: int = Field(default=16000, description="샘플링레이트 (Hz)")

    @field_validator("sample_rate")
    @classmethod
    def validate_sample_rate(cls, value: int) -> int:
        """샘플링레이트가 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"sample_rate는 양수여야 합니다. 입력값: {value}")
        return value


# =============================================================================
# practice 섹션: 연습 세션 및 리포트 설정
# =============================================================================

class PracticeConfig(BaseModel):
    """
    연습 세션 설정입니다.

    역할:
    - 연습 문장 파일 경로 지정 (한 줄에 한 문장)
    - 세션 리포트 저장 경로 지정
    - 인식 이벤트 큐 크기 제한
    """
    # 연습 문장 파일 경로 (비어있으면 문장을 직접 전달)
    sentence_file: str = Field(default="", description="연습 문장 파일 경로")
    # 리포트 저장 디렉토리
    output_dir: str = Field(default="output/reports", description="리포트 출력 디렉토리")
    # 인식 이벤트 큐 최대 크기
    event_queue_size: int = Field(default=100, description="인식 이벤트 큐 크기")

    @field_validator("event_queue_size")
    @classmethod
    def validate_queue_size(cls, value: int) -> int:
        """큐 크기가 1 이상인지 검증합니다. 0은 asyncio.Queue에서 무제한을 뜻하므로 허용하지 않습니다."""
        if value < 1:
            raise ValueError(f"event_queue_size는 1 이상이어야 합니다. 입력값: {value}")
        return value


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    역할:
    - config.yaml의 모든 섹션을 하나의 타입 안전한 객체로 통합
    - Pydantic v2 유효성 검증을 통해 설정 무결성 보장
    - 각 섹션이 누락된 경우 기본값으로 자동 생성

    사용 예시:
        >>> import yaml
        >>> with open("config.yaml") as f:
        ...     raw = yaml.safe_load(f)
        >>> config = AppConfig(**raw)
        >>> print(config.reconciler.repeat_history_size)
        12
    """
    # 시스템 전역 설정
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    # 트랜스크립트 병합 설정
    reconciler: ReconcilerConfig = Field(default_factory=ReconcilerConfig, description="병합 설정")
    # 정확도 점수 설정
    scoring: ScoringConfig = Field(default_factory=ScoringConfig, description="점수 설정")
    # 코칭 힌트 설정
    coaching: CoachingConfig = Field(default_factory=CoachingConfig, description="코칭 설정")
    # PCM 변환 설정
    audio: AudioConfig = Field(default_factory=AudioConfig, description="오디오 설정")
    # 연습 세션 설정
    practice: PracticeConfig = Field(default_factory=PracticeConfig, description="연습 세션 설정")
