"""
Bounded, thread-safe LRU used for compiled templates and expressions.

Keys are the md5 of the source text so long SQL templates do not sit in the
dict twice.
"""
import hashlib
import threading
from collections import OrderedDict
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class CompiledCache(Generic[T]):
    def __init__(self, max_size: int = 512):
        self.max_size = max_size
        self._items: OrderedDict[str, T] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def key_for(source: str) -> str:
        return hashlib.md5(source.encode(), usedforsecurity=False).hexdigest()

    def get_or_compile(self, source: str, compile_func: Callable[[str], T]) -> T:
        """Return the cached object for *source* or compile & cache it."""
        if self.max_size <= 0:
            return compile_func(source)
        key = self.key_for(source)
        with self._lock:
            item = self._items.get(key)
            if item is not None:
                self._items.move_to_end(key)
                return item
        # compile outside the lock; a concurrent duplicate compile is harmless
        item = compile_func(source)
        with self._lock:
            self._items[key] = item
            if len(self._items) > self.max_size:
                self._items.popitem(last=False)
        return item

    def __len__(self) -> int:
        return len(self._items)
