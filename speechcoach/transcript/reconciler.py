"""
트랜스크립트 조정(reconcile) 모듈입니다.

역할:
- 인식기 partial/final 결과를 받아 하나의 단조 증가 트랜스크립트로 병합
- 단어별 신뢰도 배열을 확정 텍스트 토큰과 항상 같은 길이로 유지
- 재전송/반복 final 억제 (RepeatGuard)
- 일시정지/종료 시 대기 중인 partial을 확정 텍스트로 승격
- 렌더링 계층에는 불변 스냅샷만 노출
- 핫스왑 설정 업데이트 지원

사용 예시:
    >>> reconciler = TranscriptReconciler(config)
    >>> reconciler.on_partial("the quick")
    >>> reconciler.on_final("the quick brown fox")
    >>> reconciler.snapshot().committed_text
    'the quick brown fox'
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

from speechcoach.config.schema import AppConfig
from speechcoach.stt import RecognitionEvent, WordHypothesis
from speechcoach.stt.event_parser import MalformedEventError, RawMessage, parse_recognition_event
from speechcoach.text import contains_normalized, normalize_text, tokenize
from speechcoach.transcript import TranscriptSnapshot
from speechcoach.transcript.merge import (
    fit_confidences,
    merge_transcript,
    merge_word_confidences,
    words_from_text,
)
from speechcoach.transcript.repeat_guard import RepeatGuard

logger = logging.getLogger(__name__)


class TranscriptReconciler:
    """
    연습 세션 하나의 트랜스크립트 상태를 소유하고 갱신하는 클래스입니다.

    partial/final 처리 전략:
    - partial: 확정 텍스트와 신뢰도는 건드리지 않고 대기 버퍼만 교체
    - final: 반복 검사 후 확정 텍스트/신뢰도에 병합하고 대기 버퍼를 비움

    스레드 안전성:
    - snapshot()은 렌더링 스레드에서 호출될 수 있으므로 _lock으로 보호
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        """
        TranscriptReconciler를 초기화합니다.

        파라미터:
            config (AppConfig): 전체 애플리케이션 설정 객체 (없으면 기본값)
        """
        config = config or AppConfig()
        self._lock = threading.RLock()
        self._guard = RepeatGuard(config.reconciler)

        self._committed_text: str = ""
        self._pending_partial: str = ""
        self._last_partial_normalized: str = ""
        self._confidences: list[Optional[float]] = []

        logger.info(
            f"TranscriptReconciler 초기화: "
            f"history={config.reconciler.repeat_history_size}, "
            f"similarity={config.reconciler.repeat_similarity_threshold}, "
            f"min_words={config.reconciler.repeat_min_words}"
        )

    # =========================================================================
    # 공개 인터페이스
    # =========================================================================

    def on_partial(self, text: str, words: Optional[Sequence[WordHypothesis]] = None) -> bool:
        """
        partial 결과로 대기 버퍼를 교체합니다.

        정규화 결과가 비어 있거나, 이미 확정 텍스트에 포함되어 있거나,
        직전 partial과 같으면 상태를 바꾸지 않습니다. partial의 단어 신뢰도는
        확정 시점에만 반영하므로 words는 사용하지 않습니다.

        반환값:
            bool: 대기 버퍼가 바뀌었으면 True
        """
        _require_text(text)
        normalized = normalize_text(text)

        with self._lock:
            if not normalized:
                return False
            if contains_normalized(self._committed_text, normalized):
                logger.debug(f"partial 무시 (이미 확정됨): '{normalized[:30]}'")
                return False
            if normalized == self._last_partial_normalized:
                return False

            self._pending_partial = text.strip()
            self._last_partial_normalized = normalized
            logger.debug(f"partial 갱신: '{self._pending_partial[:30]}'")
            return True

    def on_final(self, text: str, words: Optional[Sequence[WordHypothesis]] = None) -> bool:
        """
        final 결과를 확정 트랜스크립트에 병합합니다.

        처리 순서:
            1. 정규화 결과가 비어 있으면 대기 버퍼만 비우고 종료
            2. RepeatGuard가 반복으로 판정하면 버림 (대기 버퍼도 비움)
            3. 텍스트는 merge_transcript, 신뢰도는 merge_word_confidences로 병합
               (words가 없으면 텍스트 토큰마다 None)
            4. 대기 버퍼를 비우고 반복 히스토리에 기록

        반환값:
            bool: 확정 텍스트에 반영되었으면 True
        """
        _require_text(text)

        with self._lock:
            if not normalize_text(text):
                self._clear_pending()
                return False

            if self._guard.is_repeat(text, self._committed_text):
                logger.info(f"반복 final 무시: '{text.strip()[:40]}'")
                self._clear_pending()
                return False

            self._commit(text, words)
            self._clear_pending()
            self._guard.remember(text)
            return True

    def commit_pending_partial(self) -> bool:
        """
        대기 중인 partial을 확정 텍스트로 승격합니다.

        인식기가 마지막 final을 보내기 전에 결과가 필요할 때(일시정지/종료) 사용합니다.
        대기 중인 것이 없으면 아무 일도 하지 않으므로 여러 번 호출해도 안전합니다.

        반환값:
            bool: 확정 텍스트가 바뀌었으면 True
        """
        with self._lock:
            pending = self._pending_partial
            if not pending:
                return False

            self._clear_pending()
            if contains_normalized(self._committed_text, pending):
                logger.debug(f"대기 partial 이미 확정됨: '{pending[:30]}'")
                return False

            self._commit(pending, None)
            self._guard.remember(pending)
            logger.info(f"대기 partial 승격: '{pending[:40]}'")
            return True

    def reset(self) -> None:
        """모든 상태(확정 텍스트, 대기 버퍼, 신뢰도, 반복 히스토리)를 초기화합니다."""
        with self._lock:
            self._committed_text = ""
            self._confidences = []
            self._clear_pending()
            self._guard.reset()
        logger.info("TranscriptReconciler 초기화 완료 (reset)")

    def snapshot(self) -> TranscriptSnapshot:
        """현재 상태의 불변 복사본을 반환합니다."""
        with self._lock:
            return TranscriptSnapshot(
                committed_text=self._committed_text,
                pending_partial_text=self._pending_partial,
                word_confidences=tuple(self._confidences),
            )

    def preview(self) -> tuple[str, list[Optional[float]]]:
        """
        대기 partial까지 병합한 화면 표시용 텍스트와 신뢰도를 반환합니다.

        final 병합과 같은 규칙(merge_transcript + merge_word_confidences)을 쓰므로
        partial이 확정 텍스트를 소급 확장해도 신뢰도가 다른 단어로 밀리지 않습니다.
        상태는 바꾸지 않습니다.

        반환값:
            tuple[str, list[Optional[float]]]: (표시 텍스트, 토큰별 신뢰도)
        """
        with self._lock:
            if not self._pending_partial:
                return self._committed_text, list(self._confidences)
            return self._merge(self._pending_partial, None)

    def process_event(self, event: RecognitionEvent) -> bool:
        """
        RecognitionEvent 한 건을 is_final에 따라 on_final/on_partial로 전달합니다.

        반환값:
            bool: 상태가 바뀌었으면 True
        """
        if event.is_final:
            return self.on_final(event.text, event.words)
        return self.on_partial(event.text, event.words)

    def process_message(self, raw: RawMessage) -> Optional[RecognitionEvent]:
        """
        인식 서비스 원본 메시지를 파싱하여 처리합니다.

        형식이 잘못된 메시지는 경고 로그만 남기고 버리며 상태를 바꾸지 않습니다.

        반환값:
            Optional[RecognitionEvent]: 파싱된 이벤트, 버려졌으면 None
        """
        try:
            event = parse_recognition_event(raw)
        except MalformedEventError as parse_error:
            logger.warning(f"인식 메시지 무시 (형식 오류): {parse_error}")
            return None

        self.process_event(event)
        return event

    def update_config(self, new_config: AppConfig) -> None:
        """
        핫스왑: 반복 감지 임계값을 새 설정으로 교체합니다.

        ConfigManager.subscribe()에 콜백으로 등록하여 사용합니다.
        """
        with self._lock:
            self._guard.update_config(new_config.reconciler)
        logger.info(
            f"TranscriptReconciler 설정 업데이트: "
            f"similarity={new_config.reconciler.repeat_similarity_threshold}, "
            f"min_words={new_config.reconciler.repeat_min_words}"
        )

    @property
    def committed_text(self) -> str:
        with self._lock:
            return self._committed_text

    @property
    def pending_partial_text(self) -> str:
        with self._lock:
            return self._pending_partial

    # =========================================================================
    # 내부 처리
    # =========================================================================

    def _commit(self, text: str, words: Optional[Sequence[WordHypothesis]]) -> None:
        """병합 결과를 확정 상태에 반영합니다. 호출자가 _lock을 잡고 있어야 합니다."""
        self._committed_text, self._confidences = self._merge(text, words)

    def _merge(
        self,
        text: str,
        words: Optional[Sequence[WordHypothesis]],
    ) -> tuple[str, list[Optional[float]]]:
        """확정 상태에 text를 병합한 텍스트와 신뢰도를 계산합니다. 상태는 바꾸지 않습니다."""
        incoming_words = list(words) if words else words_from_text(text)

        merged_text = merge_transcript(self._committed_text, text)
        merged_confidences = merge_word_confidences(
            self._committed_text, self._confidences, incoming_words
        )

        merged_tokens = tokenize(merged_text)
        if len(merged_confidences) != len(merged_tokens):
            logger.debug(
                f"신뢰도 재배치: tokens={len(merged_tokens)}, "
                f"confidences={len(merged_confidences)}"
            )
            merged_confidences = fit_confidences(
                merged_tokens,
                tokenize(self._committed_text),
                self._confidences,
                incoming_words,
            )

        return merged_text, merged_confidences

    def _clear_pending(self) -> None:
        self._pending_partial = ""
        self._last_partial_normalized = ""


def _require_text(text: object) -> None:
    if not isinstance(text, str):
        raise TypeError(f"text는 문자열이어야 합니다: {type(text).__name__}")
