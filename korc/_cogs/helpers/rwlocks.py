"""
A reader-writer lock for rarely-written, often-read shared state.

The standard library offers only exclusive locks. Here, any number of readers
can hold the lock at once, while a writer waits for all of them to leave
and holds it exclusively. Writers are preferred: once a writer is waiting,
no new readers are admitted, so a steady stream of readers cannot starve it.

The lock is thread-based (not asyncio-based): the critical sections it guards
are short and never await, so it is safe to use from coroutines as well.
"""
import contextlib
import threading
from collections.abc import Iterator


class ReadWriteLock:

    def __init__(self) -> None:
        super().__init__()
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writers_waiting = 0
        self._writing = False

    def __repr__(self) -> str:
        clsname = self.__class__.__name__
        state = 'writing' if self._writing else f'{self._readers} readers'
        return f'<{clsname}: {state}>'

    @contextlib.contextmanager
    def reading(self) -> Iterator[None]:
        with self._condition:
            self._condition.wait_for(lambda: not self._writing and not self._writers_waiting)
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    @contextlib.contextmanager
    def writing(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            try:
                self._condition.wait_for(lambda: not self._writing and not self._readers)
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._condition:
                self._writing = False
                self._condition.notify_all()
