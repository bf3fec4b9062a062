import asyncio

from approute import exceptions
from approute.autostart import AutostartCoordinator
from approute.test.tdaemon import FakeAutostart


async def test_refresh():
    a = FakeAutostart(enabled=True)
    c = AutostartCoordinator(a)
    assert not c.enabled
    await c.refresh()
    assert c.enabled


async def test_toggle():
    a = FakeAutostart()
    c = AutostartCoordinator(a)
    await c.set_enabled(True)
    assert c.enabled
    assert a.calls == ["enable", "is_enabled"]

    # already in the requested state
    await c.set_enabled(True)
    assert a.calls == ["enable", "is_enabled"]

    await c.set_enabled(False)
    assert not c.enabled
    assert not c.busy


async def test_os_value_wins():
    a = FakeAutostart()
    a.stuck = True
    c = AutostartCoordinator(a)
    await c.set_enabled(True)
    assert not c.enabled
    assert c.error is None


async def test_toggle_error():
    a = FakeAutostart()
    a.fail_toggle = PermissionError("registry is read-only")
    c = AutostartCoordinator(a)
    await c.set_enabled(True)
    assert c.error == "registry is read-only"
    assert not c.enabled
    assert a.calls == ["enable", "is_enabled"]
    assert not c.busy


async def test_refresh_error():
    class Broken(FakeAutostart):
        async def is_enabled(self):
            raise exceptions.ApprouteException("launch agent unreadable")

    c = AutostartCoordinator(Broken())
    await c.refresh()
    assert c.error == "launch agent unreadable"


async def test_single_flight():
    a = FakeAutostart()
    c = AutostartCoordinator(a)
    first = asyncio.create_task(c.set_enabled(True))
    await asyncio.sleep(0)
    assert c.busy
    await c.set_enabled(True)
    await first
    assert a.calls.count("enable") == 1
