import threading
import time

from korc._cogs.helpers.rwlocks import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    with lock.reading():
        with lock.reading():
            assert repr(lock) == '<ReadWriteLock: 2 readers>'
    assert repr(lock) == '<ReadWriteLock: 0 readers>'


def test_writer_holds_the_lock_exclusively():
    lock = ReadWriteLock()
    with lock.writing():
        assert repr(lock) == '<ReadWriteLock: writing>'
    assert repr(lock) == '<ReadWriteLock: 0 readers>'


def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    events = []
    reading = threading.Event()

    def write():
        reading.wait()
        with lock.writing():
            events.append('write')

    thread = threading.Thread(target=write)
    thread.start()
    with lock.reading():
        reading.set()
        time.sleep(0.1)
        events.append('read-done')
    thread.join(timeout=1.0)
    assert events == ['read-done', 'write']


def test_readers_wait_for_writer():
    lock = ReadWriteLock()
    events = []
    writing = threading.Event()

    def read():
        writing.wait()
        with lock.reading():
            events.append('read')

    thread = threading.Thread(target=read)
    thread.start()
    with lock.writing():
        writing.set()
        time.sleep(0.1)
        events.append('write-done')
    thread.join(timeout=1.0)
    assert events == ['write-done', 'read']


def test_lock_is_released_on_errors():
    lock = ReadWriteLock()
    try:
        with lock.writing():
            raise ValueError("boom")
    except ValueError:
        pass
    with lock.reading():
        pass
