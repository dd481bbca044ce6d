"""
speechcoach 발음 연습 리플레이 진입점

역할:
- 녹화된 인식 서비스 메시지(JSONL, 한 줄에 메시지 하나)를 PracticeSession에 재생
- 실시간 갱신(partial/final 병합 결과와 정확도)을 콘솔에 출력
- 최종 정렬 결과, 코칭 팁, 세션 리포트 출력 및 JSON 저장
- SIGINT/SIGTERM 시 남은 메시지를 버리고 현재 상태로 채점

실행 예시:
    단일 문장:
        python main.py --reference "the quick brown fox" --events tests/fixtures/events.jsonl

    연습 문장 파일 (JSONL 파일 하나를 문장 순서대로 대응):
        python main.py --sentence-file sentences.txt --events run1.jsonl run2.jsonl --output output/reports
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from speechcoach.config import AppConfig, ConfigManager
from speechcoach.logging import setup_logging
from speechcoach.scoring.session_evaluator import SessionEvaluator
from speechcoach.session import LiveUpdate, SessionResult
from speechcoach.session.practice_session import PracticeSession

logger = logging.getLogger(__name__)


# =============================================================================
# 콘솔 출력
# =============================================================================

def _print_live(update: LiveUpdate) -> None:
    """실시간 갱신 한 건을 콘솔에 출력합니다."""
    kind = "final  " if update.is_final else "partial"
    print(f"[{update.sequence:03d}] {kind} {update.alignment.accuracy:3d}%  {update.live_text}")


def _print_result(result: SessionResult) -> None:
    """문장 하나의 최종 결과를 콘솔에 출력합니다."""
    print()
    print(f"기준 문장 : {result.reference}")
    print(f"인식 결과 : {result.snapshot.committed_text}")
    print(f"정확도    : {result.alignment.accuracy}")
    for mismatch in result.alignment.mismatches:
        print(f"  - {mismatch.reference_word or '∅'} → {mismatch.hypothesis_word or '∅'}")
    if result.hint:
        print(f"코칭 팁   : {result.hint}")
    print()


# =============================================================================
# 리플레이
# =============================================================================

async def _replay_file(session: PracticeSession, events_path: Path, stop_event: asyncio.Event) -> None:
    """JSONL 파일의 메시지를 순서대로 큐에 넣고, 실패해도 종료 신호는 반드시 보냅니다."""
    try:
        with open(events_path, encoding="utf-8") as f:
            for line in f:
                if stop_event.is_set():
                    logger.info("종료 요청으로 리플레이 중단")
                    break
                line = line.strip()
                if line:
                    await session.submit(line)
                    # 소비자에게 실행 기회를 넘김
                    await asyncio.sleep(0)
    except OSError as exc:
        logger.error(f"인식 메시지 파일 읽기 실패: {events_path}: {exc}")
    finally:
        await session.close()


async def _practice_one(
    session: PracticeSession,
    events_path: Path,
    stop_event: asyncio.Event,
) -> SessionResult:
    """메시지 파일 하나를 재생하고 최종 결과를 반환합니다."""
    producer = asyncio.create_task(_replay_file(session, events_path, stop_event), name="replay")
    try:
        result = await session.run()
    finally:
        if not producer.done():
            producer.cancel()
        await asyncio.gather(producer, return_exceptions=True)
    return result


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="speechcoach: 인식 메시지 리플레이 기반 발음 연습 채점"
    )
    parser.add_argument(
        "--config", default="config.yaml", help="설정 파일 경로 (기본: config.yaml, 없으면 기본값 사용)"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--reference", help="기준 문장")
    source.add_argument("--sentence-file", help="연습 문장 파일 경로 (한 줄에 한 문장)")
    parser.add_argument(
        "--events", nargs="+", required=True, help="인식 메시지 JSONL 파일 경로 (문장 순서대로)"
    )
    parser.add_argument("--output", help="리포트 저장 디렉토리 (config.yaml 오버라이드)")
    parser.add_argument("--quiet", action="store_true", help="실시간 갱신 출력 끄기")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> tuple[AppConfig, Optional[ConfigManager]]:
    """설정 파일이 있으면 로드하고 커맨드라인 오버라이드를 적용합니다."""
    manager: Optional[ConfigManager] = None
    if Path(args.config).exists():
        manager = ConfigManager()
        config = manager.load(args.config)
    else:
        config = AppConfig()

    if args.output or args.sentence_file:
        config_dict = config.model_dump()
        if args.output:
            config_dict["practice"]["output_dir"] = args.output
        if args.sentence_file:
            config_dict["practice"]["sentence_file"] = args.sentence_file
        config = AppConfig(**config_dict)
    return config, manager


async def _main(argv: Optional[list[str]] = None) -> int:
    """비동기 메인 함수입니다."""
    args = _parse_args(argv)
    config, manager = _load_config(args)
    session_id = setup_logging(config)

    logger.info(f"speechcoach 시작: session_id={session_id}, events={len(args.events)}")

    evaluator = SessionEvaluator(config)
    session = PracticeSession(
        config,
        evaluator=evaluator,
        on_update=None if args.quiet else _print_live,
    )

    if manager is not None:
        manager.subscribe(session.apply_config)
        manager.watch()

    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("종료 시그널 수신")
        stop_event.set()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, _signal_handler)
    loop.add_signal_handler(signal.SIGTERM, _signal_handler)

    try:
        for events_file in args.events:
            if stop_event.is_set():
                break
            reference = args.reference if args.reference else evaluator.next_sentence()
            if reference is None:
                logger.warning(f"연습 문장 소진: {events_file} 건너뜀")
                break
            session.start_sentence(reference)
            result = await _practice_one(session, Path(events_file), stop_event)
            _print_result(result)
    finally:
        if manager is not None:
            manager.stop_watch()

    report = evaluator.compute_report(session_id=session_id)
    print(
        f"세션 요약: attempts={report.attempt_count}, "
        f"accuracy={report.mean_accuracy:.1f}, WER={report.wer:.3f}, CER={report.cer:.3f}"
    )
    if report.attempt_count:
        path = evaluator.save_report(report)
        print(f"리포트 저장: {path}")

    logger.info("speechcoach 종료")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
