"""
연습 세션 평가 모듈입니다.

역할:
- 연습 시도(기준 문장, 인식 결과, 신뢰도)를 세션 단위로 누적
- 연습 문장 파일을 순서대로 읽어 기준 문장으로 사용
- 시도별 정렬 점수, 코칭 힌트, 저신뢰 단어 계산
- jiwer를 사용한 세션 전체 WER/CER 계산
- PracticeReport 생성 및 JSON 파일 저장

사용 예시:
    >>> evaluator = SessionEvaluator(config)
    >>> evaluator.add_attempt("the quick brown fox", hypothesis="the quick brown socks")
    >>> report = evaluator.compute_report(session_id="session-1")
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Sequence

import jiwer

from speechcoach.config.schema import AppConfig
from speechcoach.scoring import AttemptDetail, PracticeReport
from speechcoach.scoring.coaching import extract_low_confidence_words, pick_coaching_hint
from speechcoach.scoring.scorer import align
from speechcoach.text import normalize_confidence, normalize_text

logger = logging.getLogger(__name__)


class SessionEvaluator:
    """
    연습 시도를 누적하고 세션 리포트를 생성하는 클래스입니다.

    jiwer에는 정규화된 텍스트를 넘겨 AlignmentScorer와 같은 토큰 경계로 계산합니다.
    기준 문장은 add_attempt에 직접 전달하거나, 생략하면 문장 파일에서 순서대로 읽습니다.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        config = config or AppConfig()
        self._scoring_cfg = config.scoring
        self._coaching_cfg = config.coaching
        self._output_dir = Path(config.practice.output_dir)

        self._lock = threading.RLock()
        self._attempts: list[AttemptDetail] = []
        self._session_start_ns: int = time.time_ns()

        self._sentences: list[str] = []
        self._sentence_index: int = 0

        if config.practice.sentence_file:
            self.load_sentences(config.practice.sentence_file)

        logger.info(
            f"SessionEvaluator 초기화: "
            f"sentences={len(self._sentences)}, "
            f"output={self._output_dir}"
        )

    # =========================================================================
    # 연습 문장 로드
    # =========================================================================

    def load_sentences(self, filepath: str | Path) -> int:
        """
        연습 문장 파일을 라인 단위로 로드합니다. 빈 줄은 건너뜁니다.

        반환값:
            int: 로드된 문장 수 (파일이 없으면 0)
        """
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"연습 문장 파일 없음: {filepath}")
            return 0
        sentences = [
            line.strip()
            for line in path.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        with self._lock:
            self._sentences = sentences
            self._sentence_index = 0
        logger.info(f"연습 문장 로드: {filepath} ({len(sentences)}개)")
        return len(sentences)

    def next_sentence(self) -> Optional[str]:
        """다음 연습 문장을 반환합니다. 모두 소진했으면 None."""
        with self._lock:
            if self._sentence_index >= len(self._sentences):
                return None
            sentence = self._sentences[self._sentence_index]
            self._sentence_index += 1
            return sentence

    # =========================================================================
    # 시도 추가
    # =========================================================================

    def add_attempt(
        self,
        reference: Optional[str] = None,
        hypothesis: str = "",
        confidences: Optional[Sequence[Optional[float]]] = None,
    ) -> Optional[AttemptDetail]:
        """
        연습 시도 한 건을 채점하여 누적합니다.

        파라미터:
            reference: 기준 문장. None이면 문장 파일에서 순서대로 읽음
            hypothesis: 확정된 인식 텍스트
            confidences: hypothesis 토큰별 신뢰도

        반환값:
            Optional[AttemptDetail]: 채점 결과. 기준 문장이 없으면 None
        """
        if reference is None:
            reference = self.next_sentence()
            if reference is None:
                logger.debug("연습 문장 소진: 시도 추가 건너뜀")
                return None

        confidences = (
            [] if confidences is None else [normalize_confidence(value) for value in confidences]
        )
        result = align(reference, hypothesis, confidences, self._scoring_cfg)
        detail = AttemptDetail(
            reference=reference,
            hypothesis=hypothesis,
            accuracy=result.accuracy,
            wer=self.compute_wer(hypothesis, reference),
            cer=self.compute_cer(hypothesis, reference),
            mismatches=list(result.mismatches),
            hint=pick_coaching_hint(result.mismatches, self._coaching_cfg.generic_hint),
            low_confidence_words=extract_low_confidence_words(
                hypothesis, confidences, self._coaching_cfg.max_low_confidence_words
            ),
        )

        with self._lock:
            self._attempts.append(detail)

        logger.info(
            f"연습 시도 채점: accuracy={detail.accuracy}, "
            f"mismatches={len(detail.mismatches)}, WER={detail.wer:.3f}"
        )
        return detail

    # =========================================================================
    # 정확도 계산
    # =========================================================================

    def compute_wer(self, hypothesis: str, reference: str) -> float:
        """
        단일 쌍에 대한 WER을 계산합니다.

        기준 문장이 비어 있으면 0.0, 인식 결과가 비어 있으면 1.0입니다.
        """
        normalized_reference = normalize_text(reference)
        normalized_hypothesis = normalize_text(hypothesis)
        if not normalized_reference:
            return 0.0
        if not normalized_hypothesis:
            return 1.0
        return float(jiwer.wer(reference=normalized_reference, hypothesis=normalized_hypothesis))

    def compute_cer(self, hypothesis: str, reference: str) -> float:
        """단일 쌍에 대한 CER을 계산합니다. 빈 입력 처리는 compute_wer와 같습니다."""
        normalized_reference = normalize_text(reference)
        normalized_hypothesis = normalize_text(hypothesis)
        if not normalized_reference:
            return 0.0
        if not normalized_hypothesis:
            return 1.0
        return float(jiwer.cer(reference=normalized_reference, hypothesis=normalized_hypothesis))

    def compute_report(self, session_id: str = "") -> PracticeReport:
        """
        누적된 모든 시도에 대한 세션 리포트를 계산합니다.

        파라미터:
            session_id: 세션 식별자

        반환값:
            PracticeReport: 평균 정확도와 전체 WER/CER
        """
        with self._lock:
            attempts = list(self._attempts)

        duration_sec = (time.time_ns() - self._session_start_ns) / 1_000_000_000

        if not attempts:
            return PracticeReport(
                session_id=session_id,
                duration_sec=duration_sec,
                attempt_count=0,
                mean_accuracy=0.0,
                wer=0.0,
                cer=0.0,
            )

        scored = [
            (normalize_text(a.reference), normalize_text(a.hypothesis))
            for a in attempts
            if normalize_text(a.reference) and normalize_text(a.hypothesis)
        ]
        if scored:
            references = [r for r, _ in scored]
            hypotheses = [h for _, h in scored]
            overall_wer = float(jiwer.wer(reference=references, hypothesis=hypotheses))
            overall_cer = float(jiwer.cer(reference=references, hypothesis=hypotheses))
        else:
            overall_wer = 1.0
            overall_cer = 1.0

        mean_accuracy = sum(a.accuracy for a in attempts) / len(attempts)

        report = PracticeReport(
            session_id=session_id,
            duration_sec=duration_sec,
            attempt_count=len(attempts),
            mean_accuracy=mean_accuracy,
            wer=overall_wer,
            cer=overall_cer,
            attempts=attempts,
        )

        logger.info(
            f"연습 리포트: session={session_id}, attempts={len(attempts)}, "
            f"accuracy={mean_accuracy:.1f}, WER={overall_wer:.3f}, CER={overall_cer:.3f}"
        )
        return report

    # =========================================================================
    # 리포트 저장
    # =========================================================================

    def save_report(self, report: PracticeReport, filepath: Optional[str | Path] = None) -> Path:
        """
        PracticeReport를 JSON 파일로 저장합니다.

        파라미터:
            report: 저장할 리포트
            filepath: 저장 경로. None이면 output_dir에 자동 생성

        반환값:
            Path: 저장된 파일 경로
        """
        if filepath is None:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            ts = int(time.time())
            filepath = self._output_dir / f"practice_{report.session_id or ts}.json"
        else:
            filepath = Path(filepath)
            filepath.parent.mkdir(parents=True, exist_ok=True)

        data = asdict(report)
        data["error_count"] = sum(1 for a in report.attempts if a.mismatches)

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

        logger.info(f"연습 리포트 저장: {filepath}")
        return filepath

    # =========================================================================
    # 상태 초기화
    # =========================================================================

    def reset(self) -> None:
        """누적된 시도와 문장 진행 위치를 초기화합니다."""
        with self._lock:
            self._attempts.clear()
            self._sentence_index = 0
            self._session_start_ns = time.time_ns()
        logger.info("SessionEvaluator 초기화 완료")

    def get_attempt_count(self) -> int:
        """누적된 시도 수를 반환합니다."""
        with self._lock:
            return len(self._attempts)
