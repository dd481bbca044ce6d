"""
인식 메시지 파서 단위 테스트

검증 항목:
- JSON 문자열/바이트/딕셔너리 입력
- "word"/"text" 키 지원, 여러 단어 토큰 분할
- 신뢰도 정규화
- 형식 오류 메시지 거부
"""

from __future__ import annotations

import json

import pytest

from speechcoach.stt import RecognitionEvent
from speechcoach.stt.event_parser import (
    MalformedEventError,
    extract_word_hypotheses,
    parse_recognition_event,
)


def test_parse_partial_without_words():
    event = parse_recognition_event('{"transcript": "the quick", "is_final": false}')
    assert event == RecognitionEvent(text="the quick", is_final=False)


def test_parse_final_with_words():
    payload = json.dumps({
        "transcript": "Good morning",
        "is_final": True,
        "is_last": True,
        "words": [{"word": "Good", "confidence": 0.93}, {"text": "morning", "confidence": 81}],
    })
    event = parse_recognition_event(payload)
    assert event.is_final is True
    assert event.is_last is True
    assert [w.token for w in event.words] == ["good", "morning"]
    assert [w.confidence for w in event.words] == pytest.approx([0.93, 0.81])


def test_parse_bytes_and_dict():
    raw = {"transcript": "hello", "is_final": True}
    assert parse_recognition_event(json.dumps(raw).encode("utf-8")).text == "hello"
    assert parse_recognition_event(raw).text == "hello"


def test_text_key_and_null_transcript():
    assert parse_recognition_event({"text": "hi", "is_final": False}).text == "hi"
    assert parse_recognition_event({"transcript": None, "is_final": True}).text == ""


def test_multi_word_token_is_split():
    words = extract_word_hypotheses([{"word": "New York", "confidence": 0.6}])
    assert [(w.token, w.confidence) for w in words] == [("new", 0.6), ("york", 0.6)]


def test_invalid_word_entries_are_skipped():
    words = extract_word_hypotheses([
        "nope",
        {"word": ""},
        {"word": 5, "confidence": 0.5},
        {"word": "ok"},
    ])
    assert [(w.token, w.confidence) for w in words] == [("ok", None)]


@pytest.mark.parametrize("payload", [
    "not json",
    "[]",
    b"\xff\xfe",
    42,
    '{"transcript": ["a"], "is_final": true}',
    '{"transcript": "a", "words": {"word": "a"}}',
])
def test_malformed_payloads_raise(payload):
    with pytest.raises(MalformedEventError):
        parse_recognition_event(payload)


def test_malformed_event_error_is_value_error():
    assert issubclass(MalformedEventError, ValueError)
