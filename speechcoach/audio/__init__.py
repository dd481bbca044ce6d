"""
오디오 처리 모듈 패키지

공통 데이터 타입:
- PCMChunk: 인식 서비스 입력용 16bit/mono PCM 청크 컨테이너
"""

from dataclasses import dataclass


@dataclass
class PCMChunk:
    """
    인식 서비스로 전송할 PCM 오디오 청크입니다.

    필드:
        chunk_id: 청크 순번 (0부터 시작)
        sample_rate: 샘플링레이트 (Hz)
        data: 16bit little-endian mono PCM 바이트
        rms: RMS 레벨 (0.0~1.0)
    """
    chunk_id: int
    sample_rate: int
    data: bytes
    rms: float
