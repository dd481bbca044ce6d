"""
PCM 변환 모듈입니다.

역할:
- 마이크 float32 샘플([-1, 1])을 16bit 정수 PCM으로 양자화
- little-endian 바이트 직렬화 및 PCMChunk 생성
- RMS 레벨과 재생 시간 계산

양자화 규칙:
    음수 샘플은 32768, 양수 샘플은 32767을 곱해 int16 전체 범위를 사용합니다.
    범위를 벗어난 샘플은 [-1, 1]로 클리핑합니다.
"""

from __future__ import annotations

import logging

import numpy as np

from speechcoach.audio import PCMChunk

logger = logging.getLogger(__name__)

_INT16_NEGATIVE_SCALE = 32768.0
_INT16_POSITIVE_SCALE = 32767.0


def float32_to_int16(samples: np.ndarray) -> np.ndarray:
    """
    float 샘플 배열을 int16 배열로 변환합니다.

    파라미터:
        samples: 1차원 float 샘플 배열 (NaN은 0으로 처리)

    반환값:
        np.ndarray: 같은 길이의 int16 배열
    """
    clipped = np.clip(np.nan_to_num(np.asarray(samples, dtype=np.float32)), -1.0, 1.0)
    scaled = np.where(
        clipped < 0,
        clipped * _INT16_NEGATIVE_SCALE,
        clipped * _INT16_POSITIVE_SCALE,
    )
    return scaled.astype(np.int16)


def to_pcm16_bytes(samples: np.ndarray) -> bytes:
    """float 샘플을 16bit little-endian PCM 바이트로 직렬화합니다."""
    return float32_to_int16(samples).astype("<i2").tobytes()


def calculate_rms(samples: np.ndarray) -> float:
    """float 샘플의 RMS 레벨(0.0~1.0)을 반환합니다. 빈 배열이면 0.0."""
    if len(samples) == 0:
        return 0.0
    clipped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    return float(np.sqrt(np.mean(clipped ** 2)))


def duration_sec(sample_count: int, sample_rate: int) -> float:
    """샘플 수와 샘플링레이트로 재생 시간(초)을 계산합니다."""
    if sample_rate <= 0:
        raise ValueError(f"sample_rate는 양수여야 합니다. 입력값: {sample_rate}")
    return sample_count / sample_rate


def build_chunk(chunk_id: int, samples: np.ndarray, sample_rate: int) -> PCMChunk:
    """float 샘플 블록 하나로 전송용 PCMChunk를 만듭니다."""
    chunk = PCMChunk(
        chunk_id=chunk_id,
        sample_rate=sample_rate,
        data=to_pcm16_bytes(samples),
        rms=calculate_rms(samples),
    )
    logger.debug(
        f"PCM 청크 생성: id={chunk_id}, samples={len(samples)}, "
        f"duration={duration_sec(len(samples), sample_rate):.3f}s, rms={chunk.rms:.3f}"
    )
    return chunk
