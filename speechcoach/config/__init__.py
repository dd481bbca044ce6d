"""
설정 패키지

AppConfig 스키마와 YAML 기반 ConfigManager를 외부에서 임포트하기 위한 패키지 초기화입니다.
"""

from speechcoach.config.config_manager import (
    ConfigFileNotFoundError,
    ConfigLoadError,
    ConfigManager,
    ConfigValidationError,
)
from speechcoach.config.schema import AppConfig

__all__ = [
    "AppConfig",
    "ConfigManager",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigFileNotFoundError",
]
