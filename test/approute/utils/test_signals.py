from unittest import mock

import pytest

from approute.utils.signals import SyncSignal


def test_sync_signal() -> None:
    m = mock.Mock()

    s = SyncSignal(lambda: None)
    s.connect(m)
    s.send()

    assert m.call_args_list == [mock.call()]

    class Scheduler:
        scheduled = 0

        def schedule(self):
            self.scheduled += 1

    sched = Scheduler()
    s.connect(sched.schedule)
    s.send()
    assert sched.scheduled == 1
    assert m.call_count == 2

    s.disconnect(m)
    s.send()
    assert sched.scheduled == 2
    assert m.call_count == 2

    def err():
        raise RuntimeError

    s.connect(err)
    with pytest.raises(RuntimeError):
        s.send()


def test_signal_weakref() -> None:
    def m1():
        pass

    def m2():
        pass

    s = SyncSignal(lambda: None)
    s.connect(m1)
    s.connect(m2)
    del m2
    s.send()
    assert len(s.receivers) == 1


def test_bound_method_weakref() -> None:
    class Receiver:
        def on_changed(self):
            pass

    r = Receiver()
    s = SyncSignal(lambda: None)
    s.connect(r.on_changed)
    assert len(s.receivers) == 1
    del r
    s.send()
    assert not s.receivers


def test_sync_signal_async_receiver() -> None:
    s = SyncSignal(lambda: None)

    async def receiver():
        pass

    with pytest.raises(AssertionError):
        s.connect(receiver)
