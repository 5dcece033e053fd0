"""Time-ordered string IDs for events, predictions, ledger entries and rewards.

Snowflake-style layout (63 bits used):
  - 41 bits: milliseconds since ``_EPOCH_MS``
  - 10 bits: node id (``settings.NODE_ID``), distinct per running instance
  - 12 bits: per-millisecond sequence

IDs sort lexicographically only when of equal length, so queries order by the
numeric value (``CAST(id AS BIGINT)``) or by ``created_at, id``.
"""

import threading
import time

from config.settings import settings

_EPOCH_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z
_NODE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1


class SnowflakeIdGenerator:
    def __init__(self, node_id: int = 0) -> None:
        if not 0 <= node_id < (1 << _NODE_BITS):
            raise ValueError(f"node_id must be in [0, {(1 << _NODE_BITS) - 1}]")
        self._node_id = node_id
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms < self._last_ms:
                # Clock stepped backwards: keep issuing on the last known tick
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            value = (
                (now_ms - _EPOCH_MS) << (_NODE_BITS + _SEQUENCE_BITS)
                | self._node_id << _SEQUENCE_BITS
                | self._sequence
            )
            return str(value)


_generator = SnowflakeIdGenerator(settings.NODE_ID)


def generate_id() -> str:
    return _generator.next_id()
