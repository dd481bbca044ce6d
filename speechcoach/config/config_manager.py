"""
speechcoach 설정 관리 모듈입니다.

역할:
- YAML 설정 파일을 로드하고 Pydantic 스키마로 유효성 검증
- 환경변수 오버라이드 지원 (접두사: SPC_)
- dot-notation 기반 설정값 조회 (예: "reconciler.repeat_min_words")
- watchdog 기반 파일 변경 감지 및 핫스왑
- 설정 변경 시 구독자(콜백) 통보

사용 예시:
    >>> manager = ConfigManager()
    >>> config = manager.load("config.yaml")
    >>> threshold = manager.get("reconciler.repeat_similarity_threshold")
    >>> manager.subscribe(lambda old, new: print("설정 변경됨"))
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from speechcoach.config.schema import AppConfig

logger = logging.getLogger(__name__)

# 환경변수 오버라이드 접두사
ENV_PREFIX = "SPC_"

# 설정 변경 콜백 타입: (이전 설정, 새 설정) -> None
ConfigChangeCallback = Callable[[AppConfig, AppConfig], None]


class ConfigLoadError(Exception):
    """설정 파일 로드 중 발생하는 에러의 기본 클래스입니다."""
    pass


class ConfigValidationError(ConfigLoadError):
    """설정 스키마 검증 실패 시 발생하는 에러입니다."""
    pass


class ConfigFileNotFoundError(ConfigLoadError):
    """설정 파일을 찾을 수 없을 때 발생하는 에러입니다."""
    pass


class _ConfigFileHandler(FileSystemEventHandler):
    """감시 대상 설정 파일의 수정 이벤트만 ConfigManager에 전달합니다."""

    def __init__(self, manager: "ConfigManager", target_filename: str) -> None:
        super().__init__()
        self._manager = manager
        self._target_filename = target_filename

    def on_modified(self, event: Any) -> None:
        if event.is_directory:
            return
        if Path(event.src_path).name == self._target_filename:
            logger.info(f"설정 파일 변경 감지: {event.src_path}")
            self._manager.reload()


class ConfigManager:
    """
    YAML 설정 파일을 로드하고 관리하는 매니저 클래스입니다.

    역할:
    - YAML 파일 파싱 및 Pydantic 유효성 검증
    - 환경변수 오버라이드 (SPC_ 접두사)
    - dot-notation 설정값 조회
    - 파일 변경 감지(watchdog) 및 구독자 통보
    - 검증 실패 시 이전 설정 유지
    """

    def __init__(self) -> None:
        self._config: Optional[AppConfig] = None
        self._config_filepath: Optional[Path] = None
        self._subscribers: list[ConfigChangeCallback] = []
        self._lock = threading.RLock()
        self._observer: Optional[Observer] = None

    @property
    def config(self) -> Optional[AppConfig]:
        """현재 활성 설정 객체를 반환합니다."""
        with self._lock:
            return self._config

    def load(self, filepath: str | Path) -> AppConfig:
        """
        YAML 설정 파일을 로드하고 Pydantic 스키마로 검증합니다.

        처리 순서:
        1. 파일 존재 여부 확인
        2. YAML 파싱
        3. 환경변수 오버라이드 적용
        4. Pydantic 스키마 검증
        5. 검증 통과 시 활성 설정으로 교체

        파라미터:
            filepath (str | Path): YAML 설정 파일 경로

        반환값:
            AppConfig: 검증 완료된 설정 객체

        에러:
            ConfigFileNotFoundError: 파일이 존재하지 않을 때
            ConfigValidationError: 스키마 검증 실패 시
            ConfigLoadError: YAML 파싱 실패 등 기타 에러
        """
        filepath = Path(filepath)
        logger.info(f"설정 파일 로드 시작: {filepath}")

        if not filepath.exists():
            error_message = f"설정 파일을 찾을 수 없습니다: {filepath}"
            logger.error(error_message)
            raise ConfigFileNotFoundError(error_message)

        validated_config = self._build_config(filepath)

        with self._lock:
            self._config = validated_config
            self._config_filepath = filepath

        logger.info(
            f"설정 로드 성공: "
            f"log_level={validated_config.system.log_level}, "
            f"repeat_min_words={validated_config.reconciler.repeat_min_words}, "
            f"accuracy_exponent={validated_config.scoring.accuracy_exponent}"
        )
        return validated_config

    def reload(self) -> bool:
        """
        마지막으로 로드한 파일을 다시 읽어 설정을 교체하고 구독자에게 통보합니다.

        검증에 실패하면 이전 설정을 그대로 유지합니다.

        반환값:
            bool: 새 설정이 적용되었으면 True
        """
        if self._config_filepath is None:
            logger.warning("설정 파일 경로가 설정되지 않아 리로드를 건너뜁니다")
            return False

        try:
            new_config = self._build_config(self._config_filepath)
        except ConfigLoadError as load_error:
            logger.error(f"설정 핫스왑 실패, 이전 설정을 유지합니다: {load_error}")
            return False

        with self._lock:
            previous_config = self._config
            self._config = new_config

        logger.info("설정 핫스왑 성공: 새 설정이 적용되었습니다")
        if previous_config is not None:
            self._notify_subscribers(previous_config, new_config)
        return True

    def get(self, key: str, default: Any = None) -> Any:
        """
        dot-notation으로 설정값을 조회합니다.

        파라미터:
            key (str): dot-notation 설정 키 (예: "scoring.confidence_floor")
            default (Any): 키가 존재하지 않을 때 반환할 기본값

        반환값:
            Any: 설정값 또는 기본값

        에러:
            RuntimeError: 설정이 로드되지 않은 상태에서 호출 시
        """
        with self._lock:
            if self._config is None:
                raise RuntimeError("설정이 아직 로드되지 않았습니다. load()를 먼저 호출하세요.")

            current_value: Any = self._config
            for part in key.split("."):
                if isinstance(current_value, dict) and part in current_value:
                    current_value = current_value[part]
                elif hasattr(current_value, part):
                    current_value = getattr(current_value, part)
                else:
                    logger.debug(f"설정 키 '{key}'에서 '{part}' 부분을 찾을 수 없음, 기본값 반환")
                    return default
            return current_value

    def subscribe(self, callback: ConfigChangeCallback) -> None:
        """설정 핫스왑 시 (이전_설정, 새_설정)으로 호출될 콜백을 등록합니다."""
        self._subscribers.append(callback)
        logger.info(f"설정 변경 구독자 등록 완료 (총 {len(self._subscribers)}명)")

    def unsubscribe(self, callback: ConfigChangeCallback) -> None:
        """등록된 설정 변경 콜백을 제거합니다."""
        try:
            self._subscribers.remove(callback)
        except ValueError:
            logger.warning("제거할 구독자를 찾을 수 없습니다")

    def watch(self, filepath: str | Path | None = None) -> None:
        """
        watchdog으로 설정 파일 변경을 감시합니다.

        파일이 수정되면 reload()가 호출되고, 검증 통과 시
        등록된 구독자들에게 변경 사항을 통보합니다.

        파라미터:
            filepath: 감시할 파일 경로. None이면 마지막으로 로드한 파일
        """
        watch_path = Path(filepath) if filepath else self._config_filepath
        if watch_path is None:
            logger.warning("감시할 파일 경로가 지정되지 않았습니다. load()를 먼저 호출하세요.")
            return

        observer = Observer()
        observer.schedule(
            _ConfigFileHandler(self, watch_path.name),
            path=str(watch_path.parent),
            recursive=False,
        )
        observer.daemon = True
        observer.start()
        self._observer = observer

        logger.info(f"설정 파일 감시 활성화 완료: {watch_path}")

    def stop_watch(self) -> None:
        """설정 파일 감시를 중지합니다."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("설정 파일 감시 중지 완료")

    # =========================================================================
    # 내부 메서드
    # =========================================================================

    def _build_config(self, filepath: Path) -> AppConfig:
        """파싱 → 환경변수 오버라이드 → 검증을 한 번에 수행합니다."""
        raw_config = self._parse_yaml_file(filepath)
        raw_config = self._apply_env_overrides(raw_config)
        return self._validate_config(raw_config)

    def _parse_yaml_file(self, filepath: Path) -> dict:
        """
        YAML 파일을 읽어서 딕셔너리로 파싱합니다.

        에러:
            ConfigLoadError: 파일 읽기 또는 파싱 실패, 최상위가 딕셔너리가 아닐 때
        """
        try:
            with open(filepath, "r", encoding="utf-8") as config_file:
                raw_data = yaml.safe_load(config_file)
        except yaml.YAMLError as yaml_error:
            error_message = f"YAML 파싱 에러: {yaml_error}"
            logger.error(error_message)
            raise ConfigLoadError(error_message) from yaml_error
        except OSError as file_error:
            error_message = f"파일 읽기 에러: {file_error}"
            logger.error(error_message)
            raise ConfigLoadError(error_message) from file_error

        if raw_data is None:
            logger.warning(f"설정 파일이 비어있습니다: {filepath}")
            return {}

        if not isinstance(raw_data, dict):
            raise ConfigLoadError(
                f"설정 파일의 최상위 구조가 딕셔너리가 아닙니다: {type(raw_data)}"
            )

        return raw_data

    def _apply_env_overrides(self, raw_config: dict) -> dict:
        """
        SPC_ 접두사 환경변수로 설정값을 오버라이드합니다.

        섹션 이름은 AppConfig 스키마에 정의된 이름과 대조하므로
        필드 이름에 언더스코어가 포함되어도 올바르게 분리됩니다.
        - 예: SPC_RECONCILER_REPEAT_MIN_WORDS -> reconciler.repeat_min_words
        - 예: SPC_SYSTEM_LOG_LEVEL -> system.log_level
        알 수 없는 섹션/필드는 무시합니다.
        """
        override_count = 0

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            config_path = env_key[len(ENV_PREFIX):].lower()
            section_name, _, field_name = config_path.partition("_")

            section_model = AppConfig.model_fields.get(section_name)
            if section_model is None or not field_name:
                logger.debug(f"환경변수 '{env_key}' 무시 (알 수 없는 섹션)")
                continue
            if field_name not in section_model.annotation.model_fields:
                logger.debug(f"환경변수 '{env_key}' 무시 (알 수 없는 필드)")
                continue

            section = raw_config.setdefault(section_name, {})
            section[field_name] = _convert_env_value(env_value)
            override_count += 1

            logger.info(f"환경변수 오버라이드: {env_key} -> {section_name}.{field_name}")

        if override_count > 0:
            logger.info(f"환경변수 오버라이드 적용 완료: {override_count}건")

        return raw_config

    def _validate_config(self, raw_config: dict) -> AppConfig:
        """
        딕셔너리를 AppConfig 모델로 검증합니다.

        에러:
            ConfigValidationError: Pydantic 검증 실패 시
        """
        try:
            return AppConfig(**raw_config)
        except ValidationError as validation_error:
            error_details = validation_error.errors()
            for error_detail in error_details:
                field_path = " -> ".join(str(loc) for loc in error_detail["loc"])
                logger.error(
                    f"설정 검증 실패 - 필드: {field_path}, "
                    f"에러: {error_detail['msg']}"
                )
            raise ConfigValidationError(
                f"설정 스키마 검증 실패: {len(error_details)}개 에러 발생"
            ) from validation_error

    def _notify_subscribers(self, previous_config: AppConfig, new_config: AppConfig) -> None:
        """
        등록된 모든 구독자에게 설정 변경을 통보합니다.

        개별 구독자의 콜백에서 에러가 발생해도 나머지 구독자 통보는 계속합니다.
        """
        for subscriber_index, callback in enumerate(self._subscribers):
            try:
                callback(previous_config, new_config)
            except Exception as callback_error:
                logger.error(
                    f"구독자 {subscriber_index + 1} 콜백 실행 중 에러: {callback_error}",
                    exc_info=True,
                )


def _convert_env_value(value: str) -> Any:
    """환경변수 문자열을 bool / int / float / str 순서로 변환합니다."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    for caster in (int, float):
        try:
            return caster(value)
        except ValueError:
            pass
    return value
