from approute import events
from approute.mirror import StatusLogMirror
from approute.rules import DesiredState
from approute.test.tdaemon import FakeDaemon
from approute.test.tutils import tprocess


def tmirror(daemon=None, **kwargs) -> StatusLogMirror:
    return StatusLogMirror(daemon or FakeDaemon(), DesiredState(), **kwargs)


def test_log_cap():
    m = tmirror()
    assert m.log_limit == 500
    m.append_logs(f"line {i}" for i in range(600))
    assert len(m.logs) == 500
    assert list(m.logs) == [f"line {i}" for i in range(100, 600)]


def test_append_skips_empty():
    m = tmirror(log_limit=3)
    m.append_log("")
    m.append_logs(["a", "", "b"])
    assert list(m.logs) == ["a", "b"]
    m.append_logs(["c", "d"])
    assert list(m.logs) == ["b", "c", "d"]
    m.clear_logs()
    assert not m.logs


async def test_load_log_tail():
    d = FakeDaemon(logs=[f"l{i}" for i in range(10)])
    m = tmirror(d, log_limit=4, log_tail_limit=6)
    m.append_log("stale")
    await m.load_log_tail()
    assert d.calls[-1] == ("read_log_tail", 6)
    assert list(m.logs) == ["l6", "l7", "l8", "l9"]
    assert m.logs.maxlen == 4

    await m.load_log_tail(2)
    assert list(m.logs) == ["l8", "l9"]


async def test_load_log_tail_error():
    d = FakeDaemon(logs=["a"])
    m = tmirror(d)
    m.append_log("kept")
    d.fail("read_log_tail", "log file gone")
    await m.load_log_tail()
    assert m.error == "log file gone"
    assert list(m.logs) == ["kept"]


async def test_refresh_status_adopts_mode():
    d = FakeDaemon()
    d.status.mode = "full"
    m = tmirror(d)
    await m.refresh_status()
    assert m.status.mode == "full"
    assert m.desired.mode == "full"


async def test_refresh_status_hold_mode():
    d = FakeDaemon()
    d.status.mode = "full"
    m = tmirror(d, hold_mode=lambda: True)
    m.desired.adopt_mode("selected")
    await m.refresh_status()
    assert m.status.mode == "full"
    assert m.desired.mode == "selected"


async def test_refresh_status_error():
    d = FakeDaemon()
    m = tmirror(d)
    d.fail("get_status", "")
    await m.refresh_status()
    assert m.error == "Failed to read proxy status."


async def test_refresh_processes():
    d = FakeDaemon(processes=[tprocess("C:\\a.exe")])
    m = tmirror(d)
    await m.refresh_processes()
    assert [p.path for p in m.processes] == ["C:\\a.exe"]


async def test_handle_event():
    d = FakeDaemon()
    m = tmirror(d)
    await m.handle_event(events.LogBatch(["x", "y"]))
    assert list(m.logs) == ["x", "y"]
    assert not d.calls

    d.status.running = True
    await m.handle_event(events.ProxyExited(1))
    assert d.count("get_status") == 1
    assert m.status.running
