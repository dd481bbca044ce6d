"""
PCM 변환 모듈 단위 테스트

검증 항목:
- float32 -> int16 양자화 (음수 32768, 양수 32767 스케일)
- 범위 밖 샘플 클리핑, NaN 처리
- little-endian 바이트 직렬화
- RMS / 재생 시간 계산
"""

from __future__ import annotations

import numpy as np
import pytest

from speechcoach.audio import PCMChunk
from speechcoach.audio.pcm import (
    build_chunk,
    calculate_rms,
    duration_sec,
    float32_to_int16,
    to_pcm16_bytes,
)


class TestFloat32ToInt16:
    def test_full_scale(self):
        samples = np.array([-1.0, 0.0, 1.0], dtype=np.float32)
        assert float32_to_int16(samples).tolist() == [-32768, 0, 32767]

    def test_clipping(self):
        samples = np.array([-2.5, 3.0], dtype=np.float32)
        assert float32_to_int16(samples).tolist() == [-32768, 32767]

    def test_half_scale(self):
        samples = np.array([-0.5, 0.5], dtype=np.float32)
        assert float32_to_int16(samples).tolist() == [-16384, 16383]

    def test_nan_becomes_zero(self):
        samples = np.array([np.nan], dtype=np.float32)
        assert float32_to_int16(samples).tolist() == [0]

    def test_dtype(self):
        assert float32_to_int16(np.zeros(4, dtype=np.float32)).dtype == np.int16


def test_to_pcm16_bytes_little_endian():
    data = to_pcm16_bytes(np.array([1.0, -1.0], dtype=np.float32))
    assert data == b"\xff\x7f\x00\x80"


class TestLevels:
    def test_rms_of_constant(self):
        assert calculate_rms(np.full(100, 0.5, dtype=np.float32)) == pytest.approx(0.5)

    def test_rms_of_empty(self):
        assert calculate_rms(np.array([], dtype=np.float32)) == 0.0

    def test_duration(self):
        assert duration_sec(8000, 16000) == pytest.approx(0.5)

    def test_duration_invalid_rate(self):
        with pytest.raises(ValueError):
            duration_sec(100, 0)


def test_build_chunk():
    samples = np.zeros(160, dtype=np.float32)
    chunk = build_chunk(3, samples, 16000)
    assert isinstance(chunk, PCMChunk)
    assert chunk.chunk_id == 3
    assert chunk.sample_rate == 16000
    assert len(chunk.data) == 320
    assert chunk.rms == 0.0
