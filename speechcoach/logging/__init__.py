"""
구조화 로깅 패키지

setup_logging을 외부에서 임포트하기 위한 패키지 초기화입니다.
"""

from speechcoach.logging.structured_logger import setup_logging

__all__ = ["setup_logging"]
