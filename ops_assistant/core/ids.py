import itertools
import threading
import uuid
from typing import Callable

IdGenerator = Callable[[], str]


class CounterIdGenerator:
    """Monotonic, deterministic identifiers such as ``msg_1``, ``msg_2``"""

    def __init__(self, prefix: str = "msg", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self.prefix}_{value}"


def uuid_id_generator(prefix: str) -> IdGenerator:
    """Return a generator producing ``<prefix>_<uuid4 hex>`` identifiers"""
    def _generate() -> str:
        return f"{prefix}_{uuid.uuid4().hex}"
    return _generate


new_message_id = uuid_id_generator("msg")
new_session_id = uuid_id_generator("session")
