import pytest

from approute import exceptions
from approute import options


def test_defaults():
    opts = options.Options()
    assert opts.daemon_host == "127.0.0.1"
    assert opts.daemon_port == 47800
    assert opts.daemon_socket is None
    assert opts.apply_delay == 0.35
    assert opts.apply_retry_delay == 0.5
    assert opts.process_poll_interval == 4.0
    assert opts.log_limit == 500
    assert opts.log_tail_limit == 200
    assert opts.log_verbosity == "info"


def test_kwargs():
    opts = options.Options(apply_delay=0.01, log_limit=3)
    assert opts.apply_delay == 0.01
    assert opts.log_limit == 3
    with pytest.raises(exceptions.OptionsError, match="Unknown option"):
        options.Options(nonexistent=1)


def test_verbosity_choices():
    opts = options.Options()
    opts.set("log_verbosity=debug")
    with pytest.raises(exceptions.OptionsError):
        opts.set("log_verbosity=chatty")
    assert opts.log_verbosity == "debug"
