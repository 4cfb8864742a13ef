"""
errors.py

시뮬레이터 코어가 돌려주는 실패 종류(error kind) 모음입니다.

코어 연산은 예외를 던지지 않고, 실패를 "값"으로 돌려줍니다.
- 호출자(commands.py, simulator.py)가 `isinstance(res, AllocError)`처럼 확인하고
  어떻게 출력할지/집계할지 결정합니다.
- 실패한 연산은 상태를 바꾸지 않습니다(segment list, cache block 모두 그대로).

분류
----
- ConfigError : cache level 생성 시 geometry 오류
- AllocError  : allocate 실패
- FreeError   : deallocate 실패
- CacheError  : hierarchy가 아직 없는데 접근
"""

from __future__ import annotations

from enum import Enum


class ConfigError(Enum):
    ZERO_BLOCK_SIZE = "zero_block_size"
    TOO_SMALL = "too_small"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


class AllocError(Enum):
    ZERO_SIZE = "zero_size"
    NO_FIT = "no_fit"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


class FreeError(Enum):
    NOT_FOUND = "not_found"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


class CacheError(Enum):
    NOT_INITIALIZED = "not_initialized"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


# 콘솔 출력용 문구
_MESSAGES = {
    ConfigError.ZERO_BLOCK_SIZE: "Block size cannot be zero",
    ConfigError.TOO_SMALL: "Cache size must be at least one block size",
    AllocError.ZERO_SIZE: "Cannot allocate zero bytes",
    AllocError.NO_FIT: "Insufficient space",
    FreeError.NOT_FOUND: "Process ID not found",
    CacheError.NOT_INITIALIZED: "Cache hierarchy not initialized",
}


__all__ = ["AllocError", "CacheError", "ConfigError", "FreeError"]
