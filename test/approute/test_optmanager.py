import argparse
import io
from typing import Optional

import pytest

from approute import exceptions
from approute import optmanager


class TOptions(optmanager.OptManager):
    def __init__(self):
        super().__init__()
        self.add_option("host", str, "127.0.0.1", "help")
        self.add_option("socket", Optional[str], None, "help")
        self.add_option("port", int, 47800, "help")
        self.add_option("tail", Optional[int], 200, "help")
        self.add_option("delay", float, 0.35, "help")
        self.add_option("verbosity", str, "info", "help", ["error", "info", "debug"])


def test_defaults_and_unknown():
    o = TOptions()
    assert o.delay == 0.35
    assert "delay" in o
    assert "dealy" not in o
    with pytest.raises(AttributeError):
        _ = o.dealy
    with pytest.raises(exceptions.OptionsError, match="Unknown option"):
        o.update(dealy=1, delay=1)
    assert o.delay == 0.35
    with pytest.raises(exceptions.OptionsError, match="Unknown option"):
        o.dealy = 1


def test_unsupported_type():
    with pytest.raises(NotImplementedError):
        TOptions().add_option("flags", list, [], "help")


def test_type_and_choice_errors():
    o = TOptions()
    o.delay = 2
    assert o.delay == 2
    with pytest.raises(exceptions.OptionsError):
        o.delay = True
    with pytest.raises(exceptions.OptionsError):
        o.port = "47800"
    with pytest.raises(exceptions.OptionsError, match="expected one of error, info, debug"):
        o.verbosity = "chatty"
    assert o.verbosity == "info"


def test_changed_signal():
    o = TOptions()
    seen = []

    def rec(updated):
        seen.append(updated)

    o.changed.connect(rec)
    o.update(port=1, delay=0.1)
    assert seen == [{"port", "delay"}]


def test_rollback():
    o = TOptions()
    rec = []
    errors = []

    def sub(updated):
        rec.append((set(updated), o.port))

    def veto(updated):
        if o.port == 10:
            raise exceptions.OptionsError("port 10 is reserved")

    def err(exc):
        errors.append(exc)

    o.changed.connect(sub)
    o.changed.connect(veto)
    o.errored.connect(err)

    with pytest.raises(exceptions.OptionsError):
        o.update(port=10, delay=1.0)
    assert o.port == 47800
    assert o.delay == 0.35
    assert str(errors[0]) == "port 10 is reserved"
    assert rec == [({"port", "delay"}, 10), ({"port", "delay"}, 47800)]


def test_rollback_on_bad_value():
    o = TOptions()
    with pytest.raises(exceptions.OptionsError):
        o.update(port=1, verbosity="loud")
    assert o.port == 47800


def test_set():
    o = TOptions()

    o.set("host=::1")
    assert o.host == "::1"
    with pytest.raises(exceptions.OptionsError, match="required"):
        o.set("host")

    o.set("socket=/run/d.sock")
    assert o.socket == "/run/d.sock"
    o.set("socket")
    assert o.socket is None

    o.set("port=1")
    assert o.port == 1
    with pytest.raises(exceptions.OptionsError, match="Not an integer"):
        o.set("port=1.5")
    o.set("tail")
    assert o.tail is None

    o.set("delay=0.25")
    assert o.delay == 0.25
    o.set("delay=3")
    assert o.delay == 3.0
    with pytest.raises(exceptions.OptionsError, match="Not a number"):
        o.set("delay=soon")
    with pytest.raises(exceptions.OptionsError, match="required"):
        o.set("delay=")

    with pytest.raises(exceptions.OptionsError, match="multiple values"):
        o.set("host=a", "host=b")
    with pytest.raises(exceptions.OptionsError, match="Unknown option"):
        o.set("port=2", "apply_dleay=5")
    assert o.port == 1


def test_make_parser():
    parser = argparse.ArgumentParser()
    o = TOptions()
    o.make_parser(parser, "host", short="a")
    o.make_parser(parser, "verbosity")
    o.make_parser(parser, "port", short="p")
    o.make_parser(parser, "delay")

    args = parser.parse_args(["-a", "x", "--verbosity", "debug", "-p", "3", "--delay", "1.5"])
    assert (args.host, args.verbosity, args.port, args.delay) == ("x", "debug", 3, 1.5)
    o.update(**vars(args))
    assert o.delay == 1.5

    with pytest.raises(SystemExit):
        parser.parse_args(["--verbosity", "chatty"])


def test_load():
    o = TOptions()
    optmanager.load(o, "host: loaded\ndelay: 2\n")
    assert o.host == "loaded"
    assert o.delay == 2

    optmanager.load(o, "")
    optmanager.load(o, "# only a comment\n")
    with pytest.raises(exceptions.OptionsError, match="Unknown option"):
        optmanager.load(o, "host: other\ntial: 1\n")
    assert o.host == "loaded"
    with pytest.raises(exceptions.OptionsError, match="no keys"):
        optmanager.load(o, "just a string")
    with pytest.raises(exceptions.OptionsError, match="Config error at line"):
        optmanager.load(o, "host: [unclosed")


def test_load_paths(tmp_path):
    first = tmp_path / "first.yaml"
    first.write_text("host: first\nport: 1\n")
    second = tmp_path / "second.yaml"
    second.write_text("port: 2\n")
    o = TOptions()
    optmanager.load_paths(o, first, second, tmp_path / "missing.yaml")
    assert o.host == "first"
    assert o.port == 2

    broken = tmp_path / "broken.yaml"
    broken.write_text("port: three\n")
    with pytest.raises(exceptions.OptionsError, match="broken.yaml"):
        optmanager.load_paths(o, broken)


def test_dump_defaults():
    buf = io.StringIO()
    optmanager.dump_defaults(TOptions(), buf)
    out = buf.getvalue()
    assert "delay: 0.35" in out
    assert "Valid values are 'error', 'info', 'debug'." in out
    assert "Type optional str." in out
    assert "Type float." in out
