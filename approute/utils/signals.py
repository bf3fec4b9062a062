"""
A minimal signal dispatcher: any number of receivers can subscribe to a signal
and are called synchronously whenever it is sent.

Receivers are held by weak reference, so a component that goes away silently
drops out of every signal it was connected to.
"""

from __future__ import annotations

import inspect
import weakref
from collections.abc import Callable
from typing import Any
from typing import cast
from typing import Generic
from typing import ParamSpec

P = ParamSpec("P")


def make_weak_ref(obj: Any) -> weakref.ReferenceType:
    """
    Like weakref.ref(), but using weakref.WeakMethod for bound methods.
    """
    if hasattr(obj, "__self__"):
        return cast(weakref.ref, weakref.WeakMethod(obj))
    else:
        return weakref.ref(obj)


class _SyncSignal(Generic[P]):
    def __init__(self) -> None:
        self.receivers: list[weakref.ref[Callable]] = []

    def connect(self, receiver: Callable[P, Any]) -> None:
        """
        Register a signal receiver. Coroutine functions are rejected, since
        send() never awaits anything.
        """
        assert not inspect.iscoroutinefunction(receiver)
        self.receivers.append(make_weak_ref(receiver))

    def disconnect(self, receiver: Callable[P, Any]) -> None:
        self.receivers = [r for r in self.receivers if r() != receiver]

    def send(self, *args: P.args, **kwargs: P.kwargs) -> None:
        cleanup = False
        for ref in list(self.receivers):
            r = ref()
            if r is not None:
                ret = r(*args, **kwargs)
                assert ret is None or not inspect.isawaitable(ret)
            else:
                cleanup = True
        if cleanup:
            self.receivers = [r for r in self.receivers if r() is not None]


# noinspection PyPep8Naming
def SyncSignal(receiver_spec: Callable[P, None]) -> _SyncSignal[P]:
    """
    Create a synchronous signal with the given function signature for receivers.

    Example:

        changed = SyncSignal(lambda: None)  # receivers take no arguments
        changed.connect(scheduler.schedule)
        changed.send()
    """
    return cast(_SyncSignal[P], _SyncSignal())
