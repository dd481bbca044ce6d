"""
SessionEvaluator 단위 테스트

검증 조건:
- 완벽 일치 시 정확도 100, WER=0.0, CER=0.0
- 연습 문장 파일 로드 후 순서 매핑
- 시도별 코칭 힌트 / 저신뢰 단어
- JSON 리포트 저장 및 파싱 가능
"""

from __future__ import annotations

import json
import threading

import numpy as np
import pytest

from speechcoach.config.schema import AppConfig
from speechcoach.scoring import PracticeReport
from speechcoach.scoring.session_evaluator import SessionEvaluator


# =========================================================================
# 픽스처
# =========================================================================

@pytest.fixture
def config(tmp_path):
    cfg = AppConfig()
    cfg.practice.output_dir = str(tmp_path / "reports")
    return cfg


@pytest.fixture
def config_file(tmp_path):
    sentence_file = tmp_path / "sentences.txt"
    sentence_file.write_text("the quick brown fox\n\nvery good weather\n", encoding="utf-8")
    cfg = AppConfig()
    cfg.practice.sentence_file = str(sentence_file)
    cfg.practice.output_dir = str(tmp_path / "reports")
    return cfg


@pytest.fixture
def evaluator(config):
    return SessionEvaluator(config)


# =========================================================================
# 문장 파일
# =========================================================================

class TestSentences:
    def test_load_sentence_file(self, config_file):
        ev = SessionEvaluator(config_file)
        assert ev.next_sentence() == "the quick brown fox"
        assert ev.next_sentence() == "very good weather"
        assert ev.next_sentence() is None

    def test_missing_file_loads_nothing(self, evaluator, tmp_path):
        assert evaluator.load_sentences(tmp_path / "missing.txt") == 0
        assert evaluator.next_sentence() is None

    def test_add_attempt_uses_sentences_in_order(self, config_file):
        ev = SessionEvaluator(config_file)
        first = ev.add_attempt(hypothesis="the quick brown fox")
        second = ev.add_attempt(hypothesis="wery good weather")
        assert first.reference == "the quick brown fox"
        assert second.reference == "very good weather"
        assert ev.add_attempt(hypothesis="extra") is None
        assert ev.get_attempt_count() == 2


# =========================================================================
# 시도 채점
# =========================================================================

class TestAttempts:
    def test_perfect_attempt(self, evaluator):
        detail = evaluator.add_attempt("the quick brown fox", hypothesis="The quick brown fox.")
        assert detail.accuracy == 100
        assert detail.wer == 0.0
        assert detail.cer == 0.0
        assert detail.mismatches == []
        assert detail.hint is None

    def test_attempt_with_substitution(self, evaluator):
        detail = evaluator.add_attempt("very good", hypothesis="wery good")
        assert detail.accuracy == 50
        assert detail.wer == pytest.approx(0.5)
        assert detail.hint is not None and "/v/" in detail.hint

    def test_attempt_low_confidence_words(self, evaluator):
        detail = evaluator.add_attempt(
            "good morning everyone",
            hypothesis="good morning everyone",
            confidences=[0.9, 0.3, 0.6],
        )
        assert [word for word, _ in detail.low_confidence_words] == ["morning", "everyone", "good"]

    def test_empty_hypothesis(self, evaluator):
        detail = evaluator.add_attempt("hello world", hypothesis="")
        assert detail.accuracy == 0
        assert detail.wer == 1.0
        assert detail.cer == 1.0
        assert len(detail.mismatches) == 2


# =========================================================================
# 리포트
# =========================================================================

class TestReport:
    def test_empty_report(self, evaluator):
        report = evaluator.compute_report(session_id="s-0")
        assert isinstance(report, PracticeReport)
        assert report.attempt_count == 0
        assert report.mean_accuracy == 0.0
        assert report.attempts == []

    def test_report_aggregates(self, evaluator):
        evaluator.add_attempt("the quick brown fox", hypothesis="the quick brown fox")
        evaluator.add_attempt("very good", hypothesis="wery good")
        report = evaluator.compute_report(session_id="s-1")
        assert report.attempt_count == 2
        assert report.mean_accuracy == pytest.approx(75.0)
        assert report.wer == pytest.approx(1 / 6)
        assert report.duration_sec >= 0

    def test_save_report_json(self, evaluator, tmp_path):
        evaluator.add_attempt("very good", hypothesis="wery good", confidences=[0.4, 0.9])
        report = evaluator.compute_report(session_id="s-2")
        path = evaluator.save_report(report)

        assert path.exists()
        assert path.name == "practice_s-2.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["session_id"] == "s-2"
        assert data["attempt_count"] == 1
        assert data["error_count"] == 1
        attempt = data["attempts"][0]
        assert attempt["mismatches"] == [{"reference_word": "very", "hypothesis_word": "wery"}]
        assert attempt["low_confidence_words"][0] == ["wery", 0.4]

    def test_save_report_with_numpy_confidences(self, evaluator):
        evaluator.add_attempt(
            "very good",
            hypothesis="wery good",
            confidences=np.array([40, 90], dtype=np.int64),
        )
        path = evaluator.save_report(evaluator.compute_report(session_id="s-np"))
        attempt = json.loads(path.read_text(encoding="utf-8"))["attempts"][0]
        assert attempt["low_confidence_words"] == [["wery", 0.4], ["good", 0.9]]

    def test_save_report_explicit_path(self, evaluator, tmp_path):
        report = evaluator.compute_report(session_id="s-3")
        target = tmp_path / "nested" / "report.json"
        assert evaluator.save_report(report, target) == target
        assert target.exists()

    def test_reset(self, config_file):
        ev = SessionEvaluator(config_file)
        ev.add_attempt(hypothesis="the quick brown fox")
        ev.reset()
        assert ev.get_attempt_count() == 0
        assert ev.next_sentence() == "the quick brown fox"


def test_concurrent_add_attempt(evaluator):
    def _worker():
        for _ in range(20):
            evaluator.add_attempt("hello world", hypothesis="hello world")

    threads = [threading.Thread(target=_worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert evaluator.get_attempt_count() == 80
