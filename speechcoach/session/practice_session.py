"""
연습 세션 파이프라인 모듈입니다.

역할:
- 인식 서비스 메시지를 asyncio.Queue로 받아 단일 소비자가 순서대로 처리
- TranscriptReconciler로 병합하고 상태가 바뀔 때마다 LiveUpdate 생성
- 종료 시 대기 partial을 승격하고 최종 트랜스크립트를 채점
- SessionEvaluator에 시도를 기록
- 핫스왑 설정 적용

파이프라인 구조:
    [전송 계층] --submit()--> event_queue --run()--> [TranscriptReconciler]
                                                          │ snapshot
                                                          ▼
                                          [AlignmentScorer] --> LiveUpdate --> on_update

사용 예시:
    >>> session = PracticeSession(config, reference="the quick brown fox")
    >>> await session.submit('{"transcript": "the quick", "is_final": false}')
    >>> await session.close()
    >>> result = await session.run()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from speechcoach.config.schema import AppConfig
from speechcoach.scoring.coaching import pick_coaching_hint
from speechcoach.scoring.scorer import align
from speechcoach.scoring.session_evaluator import SessionEvaluator
from speechcoach.session import LiveUpdate, SessionResult
from speechcoach.stt.event_parser import RawMessage
from speechcoach.transcript import TranscriptSnapshot
from speechcoach.transcript.reconciler import TranscriptReconciler

logger = logging.getLogger(__name__)

LiveUpdateCallback = Callable[[LiveUpdate], None]


class PracticeSession:
    """
    기준 문장 하나에 대한 연습을 진행하는 세션 클래스입니다.

    인식 이벤트는 큐의 단일 소비자(run)만 TranscriptReconciler에 전달하므로
    전송 계층이 여러 코루틴/스레드에서 submit()해도 병합 순서가 섞이지 않습니다.
    큐의 None은 종료 신호이며, is_last 이벤트를 받아도 소비를 마칩니다.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        reference: str = "",
        evaluator: Optional[SessionEvaluator] = None,
        on_update: Optional[LiveUpdateCallback] = None,
    ) -> None:
        self._config = config or AppConfig()
        self._reference = reference
        self._evaluator = evaluator
        self._on_update = on_update

        self._reconciler = TranscriptReconciler(self._config)
        self._event_queue: asyncio.Queue[Optional[RawMessage]] = asyncio.Queue(
            maxsize=self._config.practice.event_queue_size
        )

        self._sequence: int = 0
        self._last_snapshot = TranscriptSnapshot()
        self._status: str = "idle"  # "idle" | "running" | "finished"

        logger.info(
            f"PracticeSession 초기화: reference='{reference[:40]}', "
            f"queue_size={self._config.practice.event_queue_size}"
        )

    # =========================================================================
    # 공개 인터페이스
    # =========================================================================

    @property
    def reconciler(self) -> TranscriptReconciler:
        return self._reconciler

    @property
    def reference(self) -> str:
        return self._reference

    def get_status(self) -> str:
        """세션의 현재 상태를 반환합니다."""
        return self._status

    def get_event_queue(self) -> asyncio.Queue[Optional[RawMessage]]:
        """인식 메시지가 담기는 asyncio.Queue를 반환합니다. None은 종료 신호입니다."""
        return self._event_queue

    async def submit(self, message: RawMessage) -> None:
        """
        인식 서비스 메시지 한 건을 큐에 넣습니다.

        큐가 가득 차면 가장 오래된 메시지를 버리고 넣습니다.
        """
        try:
            self._event_queue.put_nowait(message)
        except asyncio.QueueFull:
            try:
                self._event_queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            await self._event_queue.put(message)
            logger.warning("인식 이벤트 큐 오버플로우: 가장 오래된 메시지 버림")

    async def close(self) -> None:
        """소비자에게 종료 신호(None)를 보냅니다."""
        await self._event_queue.put(None)

    async def run(self) -> SessionResult:
        """
        종료 신호 또는 is_last 이벤트까지 큐를 소비한 뒤 finish() 결과를 반환합니다.
        """
        self._status = "running"
        logger.info("연습 세션 이벤트 소비 시작")

        while True:
            message = await self._event_queue.get()
            if message is None:
                logger.info("종료 신호 수신")
                break

            event = self._reconciler.process_message(message)
            if event is None:
                continue

            self._emit_if_changed(event.is_final)

            if event.is_last:
                logger.info("마지막 인식 결과 수신 (is_last)")
                break

        return self.finish()

    def finish(self) -> SessionResult:
        """
        대기 partial을 승격하고 최종 트랜스크립트를 채점합니다.

        evaluator가 있고 기준 문장이 있으면 시도를 기록합니다.
        """
        self._reconciler.commit_pending_partial()
        snapshot = self._reconciler.snapshot()
        confidences = list(snapshot.word_confidences)

        alignment = align(
            self._reference,
            snapshot.committed_text,
            confidences,
            self._config.scoring,
        )
        hint = pick_coaching_hint(alignment.mismatches, self._config.coaching.generic_hint)

        attempt = None
        if self._evaluator is not None and self._reference:
            attempt = self._evaluator.add_attempt(
                reference=self._reference,
                hypothesis=snapshot.committed_text,
                confidences=confidences,
            )

        self._status = "finished"
        logger.info(
            f"연습 세션 종료: accuracy={alignment.accuracy}, "
            f"mismatches={len(alignment.mismatches)}"
        )
        return SessionResult(
            reference=self._reference,
            snapshot=snapshot,
            alignment=alignment,
            hint=hint,
            attempt=attempt,
        )

    def start_sentence(self, reference: str) -> None:
        """
        다음 기준 문장으로 넘어갑니다.

        트랜스크립트 상태를 초기화하고 이전 문장에서 큐에 남은 메시지와
        종료 신호(is_last 이후 도착한 None 포함)도 버립니다.
        """
        self._reference = reference
        dropped = self._drain_queue()
        if dropped:
            logger.info(f"이전 문장의 큐 잔여 메시지 버림: {dropped}건")
        self._reconciler.reset()
        self._sequence = 0
        self._last_snapshot = TranscriptSnapshot()
        self._status = "idle"
        logger.info(f"다음 문장 시작: '{reference[:40]}'")

    def apply_config(self, old_config: AppConfig, new_config: AppConfig) -> None:
        """
        설정 변경을 세션에 적용합니다 (핫스왑).

        ConfigManager.subscribe()에 콜백으로 등록되어 파일 변경 시 자동 호출됩니다.
        큐 크기는 다음 세션부터 적용됩니다.
        """
        self._config = new_config
        self._reconciler.update_config(new_config)
        logger.info("연습 세션 설정 핫스왑 완료")

    def live_update(self, is_final: bool = False) -> LiveUpdate:
        """현재 상태로 LiveUpdate를 만듭니다. 순번은 증가시키지 않습니다."""
        snapshot = self._reconciler.snapshot()
        live_text, confidences = self._reconciler.preview()
        alignment = align(self._reference, live_text, confidences, self._config.scoring)
        return LiveUpdate(
            sequence=self._sequence,
            snapshot=snapshot,
            live_text=live_text,
            alignment=alignment,
            is_final=is_final,
        )

    # =========================================================================
    # 내부 헬퍼
    # =========================================================================

    def _drain_queue(self) -> int:
        dropped = 0
        while True:
            try:
                self._event_queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            dropped += 1

    def _emit_if_changed(self, is_final: bool) -> None:
        snapshot = self._reconciler.snapshot()
        if snapshot == self._last_snapshot:
            return
        self._last_snapshot = snapshot

        update = self.live_update(is_final=is_final)
        self._sequence += 1

        logger.debug(
            f"실시간 갱신 #{update.sequence}: '{update.live_text[:40]}', "
            f"accuracy={update.alignment.accuracy}"
        )
        if self._on_update is not None:
            self._on_update(update)
