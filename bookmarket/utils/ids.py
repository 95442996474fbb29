"""
Snowflake-style ID generation.

IDs are 64-bit integers rendered as decimal strings: 41 bits of
milliseconds since ``CUSTOM_EPOCH``, 10 bits of instance id and a 12-bit
per-millisecond sequence. They sort by creation time.
"""

from __future__ import annotations

import threading
import time

CUSTOM_EPOCH_MS = 1_650_240_000_000
INSTANCE_ID = 3802 & 0x3FF

_SEQUENCE_BITS = 12
_INSTANCE_BITS = 10
_MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1


class SnowflakeGenerator:
    def __init__(self, instance_id: int = INSTANCE_ID, epoch_ms: int = CUSTOM_EPOCH_MS) -> None:
        self._instance_id = instance_id & ((1 << _INSTANCE_BITS) - 1)
        self._epoch_ms = epoch_ms
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            now = int(time.time() * 1000)
            if now < self._last_ms:
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & _MAX_SEQUENCE
                if self._sequence == 0:
                    # sequence exhausted for this millisecond
                    while now <= self._last_ms:
                        now = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now
            return (
                ((now - self._epoch_ms) << (_INSTANCE_BITS + _SEQUENCE_BITS))
                | (self._instance_id << _SEQUENCE_BITS)
                | self._sequence
            )


_generator = SnowflakeGenerator()


def generate_id() -> str:
    return str(_generator.next_id())
