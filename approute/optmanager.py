from __future__ import annotations

import contextlib
import textwrap
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from typing import Optional
from typing import TextIO

import ruamel.yaml

from approute import exceptions
from approute.utils import signals
from approute.utils import typecheck

unset = object()

NUMBERS = {
    int: int,
    Optional[int]: int,
    float: float,
    Optional[float]: float,
}
STRINGS = (str, Optional[str])


class _Option:
    __slots__ = ("name", "typespec", "value", "default", "choices", "help")

    def __init__(
        self,
        name: str,
        typespec: type | object,
        default: Any,
        help: str,
        choices: Sequence[str] | None,
    ) -> None:
        if typespec not in NUMBERS and typespec not in STRINGS:
            raise NotImplementedError(f"Unsupported option type: {typespec}")
        typecheck.check_option_type(name, default, typespec)
        self.name = name
        self.typespec = typespec
        self.default = default
        self.value = unset
        self.help = textwrap.dedent(help).strip().replace("\n", " ")
        self.choices = choices

    def __repr__(self):
        return f"{self.current()} [{self.typespec}]"

    def current(self) -> Any:
        return self.default if self.value is unset else self.value

    def set(self, value: Any) -> None:
        try:
            typecheck.check_option_type(self.name, value, self.typespec)
        except TypeError as e:
            raise exceptions.OptionsError(str(e)) from e
        if self.choices is not None and value not in self.choices:
            raise exceptions.OptionsError(
                f"Invalid value for {self.name}: {value!r} "
                f"(expected one of {', '.join(self.choices)})"
            )
        self.value = value

    def parse(self, values: list[str]) -> Any:
        """
        Convert the string values of a --set specification to a value of the
        option's type. A bare "name" (no "=") arrives as an empty list.
        """
        if len(values) > 1:
            raise exceptions.OptionsError(
                f"Received multiple values for {self.name}: {values}"
            )
        text = values[0] if values else None
        if not text:
            if self.typespec in (str, int, float):
                raise exceptions.OptionsError(f"Option is required: {self.name}")
            return None if text is None or self.typespec in NUMBERS else text
        if self.typespec in STRINGS:
            return text
        number = NUMBERS[self.typespec]
        try:
            return number(text)
        except ValueError:
            kind = "an integer" if number is int else "a number"
            raise exceptions.OptionsError(f"Not {kind}: {text}")


def _sig_changed_spec(updated: set[str]) -> None:  # pragma: no cover
    ...  # expected function signature for OptManager.changed receivers.


def _sig_errored_spec(exc: Exception) -> None:  # pragma: no cover
    ...  # expected function signature for OptManager.errored receivers.


class OptManager:
    """
    Base class for typed options.

    .changed fires with the set of updated names after every successful
    update. If a receiver raises OptionsError, the update is rolled back,
    .errored is notified and .changed fires again for the restored values.
    Unknown option names are always an OptionsError.
    """

    def __init__(self) -> None:
        self.changed = signals.SyncSignal(_sig_changed_spec)
        self.errored = signals.SyncSignal(_sig_errored_spec)
        # Must be the last attribute: afterwards, assignments are updates.
        self._options: dict[str, _Option] = {}

    def add_option(
        self,
        name: str,
        typespec: type | object,
        default: Any,
        help: str,
        choices: Sequence[str] | None = None,
    ) -> None:
        self._options[name] = _Option(name, typespec, default, help, choices)

    @contextlib.contextmanager
    def rollback(self, updated: set[str]):
        old = {name: o.value for name, o in self._options.items()}
        try:
            yield
        except exceptions.OptionsError as e:
            self.errored.send(exc=e)
            for name, value in old.items():
                self._options[name].value = value
            self.changed.send(updated=updated)
            raise

    def __getattr__(self, attr):
        if attr in self._options:
            return self._options[attr].current()
        raise AttributeError(f"No such option: {attr}")

    def __setattr__(self, attr, value):
        if "_options" not in self.__dict__:
            super().__setattr__(attr, value)
        else:
            self.update(**{attr: value})

    def keys(self) -> set[str]:
        return set(self._options)

    def __contains__(self, k) -> bool:
        return k in self._options

    def update(self, **kwargs) -> None:
        unknown = [k for k in kwargs if k not in self._options]
        if unknown:
            raise exceptions.OptionsError(f"Unknown option(s): {', '.join(unknown)}")
        if not kwargs:
            return
        updated = set(kwargs)
        with self.rollback(updated):
            for k, v in kwargs.items():
                self._options[k].set(v)
            self.changed.send(updated=updated)

    def set(self, *specs: str) -> None:
        """
        Apply "option=value" specifications as given on the command line.
        Raises OptionsError on unknown options or unparseable values.
        """
        values: dict[str, list[str]] = {}
        for spec in specs:
            name, eq, value = spec.partition("=")
            values.setdefault(name, [])
            if eq:
                values[name].append(value)

        unknown = [name for name in values if name not in self._options]
        if unknown:
            raise exceptions.OptionsError(f"Unknown option(s): {', '.join(unknown)}")
        self.update(
            **{name: self._options[name].parse(v) for name, v in values.items()}
        )

    def make_parser(self, parser, optname, metavar=None, short=None):
        """
        Add a command-line flag for a named option. The flag's dest is the
        option name, so parsed values can be passed straight to update().
        """
        o = self._options[optname]
        flags = ["--%s" % optname.replace("_", "-")]
        if short:
            flags.append("-" + short)
        parser.add_argument(
            *flags,
            action="store",
            type=NUMBERS.get(o.typespec, str),
            dest=optname,
            help=o.help,
            metavar=metavar,
            choices=o.choices,
        )


def dump_defaults(opts: OptManager, out: TextIO):
    """
    Dumps an annotated YAML document with all options and their defaults.
    """
    s = ruamel.yaml.comments.CommentedMap()
    for k in sorted(opts.keys()):
        o = opts._options[k]
        s[k] = o.default
        txt = o.help
        if o.choices:
            txt += " Valid values are %s." % ", ".join(repr(c) for c in o.choices)
        else:
            txt += " Type %s." % typecheck.typespec_to_str(o.typespec)
        s.yaml_set_comment_before_after_key(k, before="\n" + "\n".join(textwrap.wrap(txt)))
    return ruamel.yaml.YAML().dump(s, out)


def parse(text: str) -> dict[str, Any]:
    if not text:
        return {}
    try:
        data = ruamel.yaml.YAML(typ="safe", pure=True).load(text)
    except ruamel.yaml.error.YAMLError as v:
        if hasattr(v, "problem_mark"):
            snip = v.problem_mark.get_snippet()
            raise exceptions.OptionsError(
                "Config error at line %s:\n%s\n%s"
                % (v.problem_mark.line + 1, snip, getattr(v, "problem", ""))
            )
        raise exceptions.OptionsError("Could not parse options.")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise exceptions.OptionsError("Config error - no keys found.")
    return data


def load(opts: OptManager, text: str) -> None:
    """
    Load configuration from YAML text. Unknown keys and ill-typed values
    raise OptionsError and leave the options untouched.
    """
    opts.update(**parse(text))


def load_paths(opts: OptManager, *paths: Path | str) -> None:
    """
    Load paths in order, later files taking precedence. Missing paths are
    skipped.
    """
    for p in paths:
        p = Path(p).expanduser()
        if not p.is_file():
            continue
        try:
            load(opts, p.read_text(encoding="utf8"))
        except (exceptions.OptionsError, UnicodeDecodeError) as e:
            raise exceptions.OptionsError(f"Error reading {p}: {e}")
