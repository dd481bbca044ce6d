"""
speechcoach: 발음 연습 코어

스트리밍 인식 결과(partial/final)를 하나의 트랜스크립트로 병합하고,
기준 문장과 단어 단위로 정렬하여 0~100 정확도와 코칭 팁을 계산합니다.
"""

__version__ = "0.1.0"
