# orders_api/ids.py
import secrets
import threading
import time

# 2024-01-01T00:00:00Z in ms
EPOCH_MS = 1704067200000

NODE_BITS = 10
SEQUENCE_BITS = 12
MAX_NODE = (1 << NODE_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1


class OrderIdGenerator:
    """
    Sortable 63-bit order ids: 41 bits of milliseconds since EPOCH_MS,
    10 bits of node id and a 12 bit per-millisecond sequence.

    Ids from one generator are strictly increasing. The node id is random
    unless given, so two processes only collide when they share a node id,
    a millisecond and a sequence value; the table's primary key rejects
    that case on insert.
    """

    def __init__(self, node_id=None, clock=time.time_ns):
        if node_id is None:
            node_id = secrets.randbelow(MAX_NODE + 1)
        if not 0 <= node_id <= MAX_NODE:
            raise ValueError(f"node_id must be between 0 and {MAX_NODE}")
        self.node_id = node_id
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def _now_ms(self) -> int:
        return self._clock() // 1_000_000 - EPOCH_MS

    def __call__(self) -> int:
        with self._lock:
            now = self._now_ms()
            # clock went backwards: keep issuing from the last seen millisecond
            if now < self._last_ms:
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # sequence exhausted, borrow the next millisecond
                    now = self._last_ms + 1
            else:
                self._sequence = 0
            self._last_ms = now
            return (now << (NODE_BITS + SEQUENCE_BITS)) | (self.node_id << SEQUENCE_BITS) | self._sequence
