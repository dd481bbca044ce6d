"""
인식 서비스 메시지 파서 모듈입니다.

역할:
- 스트리밍 인식 서비스의 JSON 메시지를 RecognitionEvent로 변환
- words 항목의 "word"/"text" 키를 모두 지원하고 여러 단어가 붙은 토큰은 분할
- 신뢰도를 [0, 1]로 정규화 (0~100 스케일 자동 감지)
- 형식이 잘못된 메시지는 MalformedEventError로 거부

메시지 형식:
    {"transcript": "hello world", "is_final": true, "is_last": false,
     "words": [{"word": "hello", "confidence": 0.93}, {"text": "world", "confidence": 87}]}

사용 예시:
    >>> event = parse_recognition_event('{"transcript": "hi", "is_final": false}')
    >>> event.is_final
    False
"""

from __future__ import annotations

import json
import logging
from typing import Any, Union

from speechcoach.stt import RecognitionEvent, WordHypothesis
from speechcoach.text import normalize_confidence, tokenize

logger = logging.getLogger(__name__)

RawMessage = Union[str, bytes, bytearray, dict]


class MalformedEventError(ValueError):
    """인식 메시지를 RecognitionEvent로 해석할 수 없을 때 발생하는 에러입니다."""
    pass


def parse_recognition_event(payload: RawMessage) -> RecognitionEvent:
    """
    인식 서비스 메시지 한 건을 RecognitionEvent로 변환합니다.

    파라미터:
        payload: JSON 문자열/바이트 또는 이미 파싱된 딕셔너리

    반환값:
        RecognitionEvent: 변환된 이벤트

    에러:
        MalformedEventError: JSON 파싱 실패, 최상위가 객체가 아님,
            transcript가 문자열이 아님, words가 배열이 아닐 때
    """
    message = _load_message(payload)

    text = message.get("transcript", message.get("text", ""))
    if text is None:
        text = ""
    if not isinstance(text, str):
        raise MalformedEventError(f"transcript는 문자열이어야 합니다: {type(text).__name__}")

    raw_words = message.get("words")
    if raw_words is not None and not isinstance(raw_words, list):
        raise MalformedEventError(f"words는 배열이어야 합니다: {type(raw_words).__name__}")

    return RecognitionEvent(
        text=text,
        is_final=bool(message.get("is_final", False)),
        words=extract_word_hypotheses(raw_words or []),
        is_last=bool(message.get("is_last", False)),
    )


def extract_word_hypotheses(raw_words: list[Any]) -> list[WordHypothesis]:
    """
    words 배열을 토큰 단위 WordHypothesis 목록으로 변환합니다.

    한 항목에 여러 단어가 들어 있으면 (예: "New York") 토큰마다 같은 신뢰도를 부여합니다.
    딕셔너리가 아니거나 토큰이 비어 있는 항목은 건너뜁니다.
    """
    hypotheses: list[WordHypothesis] = []
    for item in raw_words:
        if not isinstance(item, dict):
            logger.debug(f"words 항목 무시 (객체 아님): {item!r}")
            continue
        token_text = item.get("word") or item.get("text") or ""
        if not isinstance(token_text, str):
            continue
        confidence = normalize_confidence(item.get("confidence"))
        for part in tokenize(token_text):
            hypotheses.append(WordHypothesis(token=part, confidence=confidence))
    return hypotheses


def _load_message(payload: RawMessage) -> dict:
    """문자열/바이트 메시지를 JSON으로 파싱하고 최상위가 객체인지 확인합니다."""
    if isinstance(payload, dict):
        return payload

    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as decode_error:
            raise MalformedEventError(f"UTF-8 디코딩 실패: {decode_error}") from decode_error

    if not isinstance(payload, str):
        raise MalformedEventError(f"지원하지 않는 메시지 타입: {type(payload).__name__}")

    try:
        message = json.loads(payload)
    except json.JSONDecodeError as json_error:
        raise MalformedEventError(f"JSON 파싱 실패: {json_error}") from json_error

    if not isinstance(message, dict):
        raise MalformedEventError(f"메시지 최상위는 객체여야 합니다: {type(message).__name__}")
    return message
