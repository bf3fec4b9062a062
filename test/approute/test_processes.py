import asyncio

from approute.processes import ProcessCache
from approute.test.tdaemon import FakeDaemon
from approute.test.tutils import tprocess
from approute.test.tutils import wait_until


async def test_refresh_replaces_snapshot():
    d = FakeDaemon(processes=[tprocess("/bin/a"), tprocess("/bin/b")])
    cache = ProcessCache(d)
    await cache.refresh()
    assert [p.path for p in cache.processes] == ["/bin/a", "/bin/b"]

    d.processes = [tprocess("/bin/c")]
    await cache.refresh()
    assert [p.path for p in cache.processes] == ["/bin/c"]


async def test_refresh_error_keeps_snapshot():
    d = FakeDaemon(processes=[tprocess("/bin/a")])
    cache = ProcessCache(d)
    await cache.refresh()
    d.fail("list_processes", "access denied")
    await cache.refresh()
    assert cache.error == "access denied"
    assert [p.path for p in cache.processes] == ["/bin/a"]

    await cache.refresh()
    assert cache.error is None


async def test_polling():
    d = FakeDaemon()
    cache = ProcessCache(d, interval=0.01)
    assert not cache.polling
    cache.start_polling()
    cache.start_polling()
    assert cache.polling
    await wait_until(lambda: d.count("list_processes") >= 3)

    cache.stop_polling()
    cache.stop_polling()
    assert not cache.polling
    await asyncio.sleep(0)
    seen = d.count("list_processes")
    await asyncio.sleep(0.05)
    assert d.count("list_processes") == seen


async def test_polling_interval_override():
    cache = ProcessCache(FakeDaemon(), interval=10)
    cache.start_polling(0.5)
    assert cache.interval == 0.5
    cache.stop_polling()


async def test_polling_survives_unexpected_errors(monkeypatch, caplog_async):
    d = FakeDaemon(processes=[tprocess("/bin/a")])
    cache = ProcessCache(d, interval=0.01)
    calls = []

    async def list_processes():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("garbled reply")
        return [tprocess("/bin/b")]

    monkeypatch.setattr(d, "list_processes", list_processes)
    cache.start_polling()
    try:
        await caplog_async.await_log("Process refresh failed: RuntimeError('garbled reply')")
        await wait_until(lambda: cache.processes)
        assert cache.error is None
        assert [p.path for p in cache.processes] == ["/bin/b"]
    finally:
        cache.stop_polling()
