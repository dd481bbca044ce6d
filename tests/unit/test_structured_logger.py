"""
구조화 로깅 모듈 단위 테스트

검증 조건:
- JSON 포맷 로그에 session_id, level, module 필드 포함
- RotatingFileHandler 파일 생성 및 순환 정책 (10MB, 5개)
- text 포맷 세션 접두어
- 재설정 시 핸들러 중복 없음
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from io import StringIO

import pytest

from speechcoach.config.schema import AppConfig
from speechcoach.logging import setup_logging
from speechcoach.logging.structured_logger import _JsonFormatter, _TextFormatter


# =========================================================================
# 픽스처
# =========================================================================

@pytest.fixture(autouse=True)
def reset_root_logger():
    """각 테스트 후 root logger 핸들러 초기화."""
    yield
    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()


@pytest.fixture
def config_json(tmp_path):
    cfg = AppConfig()
    cfg.system.log_level = "DEBUG"
    cfg.system.log_format = "json"
    cfg.system.log_dir = str(tmp_path / "logs")
    cfg.system.session_id = "practice-session-001"
    return cfg


def _rotating_handler() -> logging.handlers.RotatingFileHandler:
    return next(
        h for h in logging.getLogger().handlers
        if isinstance(h, logging.handlers.RotatingFileHandler)
    )


def _emit(formatter: logging.Formatter, name: str, message: str, **extra) -> str:
    """메모리 스트림 핸들러로 로그 한 건을 출력하고 결과 문자열을 반환합니다."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger = logging.getLogger(name)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    try:
        logger.info(message, extra=extra or None)
    finally:
        logger.removeHandler(handler)
        logger.propagate = True
    return stream.getvalue().strip()


# =========================================================================
# setup_logging
# =========================================================================

class TestSetupLogging:
    def test_returns_session_id_from_config(self, config_json):
        assert setup_logging(config_json) == "practice-session-001"

    def test_explicit_session_id_wins(self, config_json):
        assert setup_logging(config_json, session_id="custom-sid") == "custom-sid"

    def test_uuid_when_empty(self, tmp_path):
        cfg = AppConfig()
        cfg.system.log_dir = str(tmp_path / "logs")
        sid = setup_logging(cfg)
        assert len(sid) == 36
        assert sid.count("-") == 4

    def test_log_level_applied(self, config_json):
        config_json.system.log_level = "WARNING"
        setup_logging(config_json)
        assert logging.getLogger().level == logging.WARNING

    def test_repeated_setup_does_not_duplicate_handlers(self, config_json):
        setup_logging(config_json)
        count = len(logging.getLogger().handlers)
        setup_logging(config_json)
        assert len(logging.getLogger().handlers) == count

    def test_rotating_file_policy(self, config_json):
        setup_logging(config_json)
        handler = _rotating_handler()
        assert handler.maxBytes == 10 * 1024 * 1024
        assert handler.backupCount == 5

    def test_log_file_written(self, config_json, tmp_path):
        setup_logging(config_json)
        logging.getLogger("speechcoach.test").info("final 병합")
        _rotating_handler().flush()
        log_file = tmp_path / "logs" / "speechcoach.log"
        assert log_file.exists()
        assert "final 병합" in log_file.read_text(encoding="utf-8")

    def test_file_records_carry_session_id(self, config_json, tmp_path):
        sid = setup_logging(config_json)
        logging.getLogger("speechcoach.transcript").info("partial 갱신")
        _rotating_handler().flush()
        lines = (tmp_path / "logs" / "speechcoach.log").read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["session_id"] == sid
        assert record["module"] == "speechcoach.transcript"


# =========================================================================
# 포맷터
# =========================================================================

class TestFormatters:
    def test_json_fields(self):
        output = _emit(_JsonFormatter(session_id="abc"), "speechcoach.json", "반복 final 무시")
        data = json.loads(output)
        assert data["session_id"] == "abc"
        assert data["level"] == "INFO"
        assert data["module"] == "speechcoach.json"
        assert data["message"] == "반복 final 무시"

    def test_json_extra_fields(self):
        output = _emit(_JsonFormatter(session_id="abc"), "speechcoach.extra", "병합", word_count=7)
        assert json.loads(output)["word_count"] == 7

    def test_text_prefix_and_level(self):
        output = _emit(_TextFormatter(session_id="text-session-002"), "speechcoach.text", "텍스트 로그")
        assert "[text-ses]" in output
        assert "INFO" in output
        assert "텍스트 로그" in output

    def test_text_without_session(self):
        output = _emit(_TextFormatter(), "speechcoach.nosid", "세션 없음")
        assert "[no-sid]" in output
