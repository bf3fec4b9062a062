from __future__ import annotations

import argparse
import asyncio
import logging
import os
import platform
import sys
from collections.abc import Callable
from collections.abc import Sequence
from typing import IO

from approute import exceptions
from approute import log
from approute import options
from approute import optmanager
from approute import version
from approute.daemon import Daemon
from approute.engine import Engine
from approute.tools import cmdline
from approute.transport import JsonLinesDaemon

MUTATING = {"mode", "proxy", "direct", "clear", "activate", "remove"}


def process_options(parser, opts, args):
    if args.quiet:
        args.log_verbosity = "error"
    if args.verbose:
        args.log_verbosity = "debug"

    adict = {
        key: val for key, val in vars(args).items() if key in opts and val is not None
    }
    opts.update(**adict)


def dump_system_info() -> str:
    data = [
        f"Approute: {version.get_dev_version()}",
        f"Python:   {platform.python_version()}",
        f"Platform: {platform.platform()}",
    ]
    return "\n".join(data)


def _print_status(engine: Engine, out: IO[str]) -> None:
    s = engine.status
    print(f"mode:     {engine.mode}", file=out)
    running = "yes" if s.running else "no"
    if s.pid:
        running += f" (pid {s.pid})"
    print(f"running:  {running}", file=out)
    if s.last_exit is not None:
        print(f"exit:     {s.last_exit}", file=out)
    if s.last_error:
        print(f"error:    {s.last_error}", file=out)
    print(f"profile:  {s.profile_path}", file=out)
    if s.config_path:
        print(f"config:   {s.config_path}", file=out)
    if s.log_path:
        print(f"log:      {s.log_path}", file=out)


async def execute(engine: Engine, args: argparse.Namespace, out: IO[str]) -> int:
    """
    Run one command against a started engine. Returns the exit code.
    """
    cmd = args.command
    if cmd == "mode":
        engine.set_mode(args.mode)
    elif cmd == "proxy":
        engine.set_proxy(args.path, args.name)
    elif cmd == "direct":
        engine.set_direct(args.path)
    elif cmd == "clear":
        engine.clear_app_rules()
    elif cmd == "activate":
        await engine.activate_profile(args.tag)
    elif cmd == "remove":
        await engine.remove_profile(args.tag)
    elif cmd == "import-links":
        await engine.import_share_links(args.links)
    elif cmd == "import-json":
        with args.file as f:
            await engine.import_json(f.read())
    elif cmd == "logs":
        await engine.mirror.load_log_tail(args.limit)
        for line in engine.logs:
            print(line, file=out)
        return 1 if engine.mirror.error else 0

    if cmd in MUTATING or cmd.startswith("import-"):
        await engine.scheduler.wait_idle()

    if cmd in ("profiles", "activate", "remove", "import-links", "import-json"):
        for w in engine.profiles.warnings:
            print(f"warning: {w}", file=sys.stderr)
        if engine.profiles.error:
            print(f"error: {engine.profiles.error}", file=sys.stderr)
            return 1
        for p in engine.profiles.profiles:
            marker = "*" if p.tag == engine.profiles.active_tag else " "
            server = f"{p.server}:{p.server_port}" if p.server_port else p.server or ""
            print(f"{marker} {p.tag:<20} {p.type:<12} {server}", file=out)
        return 0

    if cmd == "apps":
        for item in engine.app_list:
            state = f"running({item.count})" if item.running else "stopped"
            print(f"{item.mode:<6} {state:<12} {item.name:<24} {item.path}", file=out)
        return 0

    _print_status(engine, out)
    if engine.scheduler.error:
        print(f"error: {engine.scheduler.error.message}", file=sys.stderr)
        return 1
    return 0


def run(
    arguments: Sequence[str] | None = None,
    make_daemon: Callable[[options.Options], Daemon] = JsonLinesDaemon.from_options,
    out: IO[str] | None = None,
) -> int:
    out = out or sys.stdout

    async def main() -> int:
        opts = options.Options()
        parser = cmdline.approute(opts)
        args = parser.parse_args(arguments)

        try:
            opts.set(*args.setoptions)
            optmanager.load_paths(
                opts,
                os.path.join(opts.confdir, "config.yaml"),
                os.path.join(opts.confdir, "config.yml"),
            )
            process_options(parser, opts, args)
        except exceptions.OptionsError as e:
            print(f"{parser.prog}: {e}", file=sys.stderr)
            return 1

        if args.version:
            print(dump_system_info(), file=out)
            return 0
        if args.options:
            optmanager.dump_defaults(opts, out)
            return 0
        if not args.command:
            parser.print_help(out)
            return 2

        handler = log.TermLogHandler()
        handler.setLevel(log.level_for(opts.log_verbosity))
        handler.install()
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("asyncio").setLevel(logging.WARNING)

        daemon = make_daemon(opts)
        engine = Engine(daemon, options=opts)
        try:
            if isinstance(daemon, JsonLinesDaemon):
                await daemon.connect()
            await engine.start()
            if engine.error:
                print(f"warning: {engine.error}", file=sys.stderr)
            return await execute(engine, args, out)
        except exceptions.DaemonError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        finally:
            await engine.stop()
            if isinstance(daemon, JsonLinesDaemon):
                await daemon.close()
            handler.uninstall()

    return asyncio.run(main())


def approute(args=None) -> int | None:  # pragma: no cover
    return run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(approute())
