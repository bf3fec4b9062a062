import argparse

from approute.models import PROXY_MODES


def common_options(parser, opts):
    parser.add_argument(
        "--version",
        action="store_true",
        help="show version number and exit",
        dest="version",
    )
    parser.add_argument(
        "--options",
        action="store_true",
        help="Show all options and their default values",
    )
    parser.add_argument(
        "--set",
        type=str,
        dest="setoptions",
        default=[],
        action="append",
        metavar="option[=value]",
        help="""
            Set an option. When the value is omitted, strings and integers are
            set to None (if permitted). Options can also be set in
            CONFDIR/config.yaml.
        """,
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", dest="quiet", help="Quiet."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_const",
        dest="verbose",
        const="debug",
        help="Increase log verbosity.",
    )

    group = parser.add_argument_group("Daemon")
    opts.make_parser(group, "daemon_host", metavar="HOST")
    opts.make_parser(group, "daemon_port", metavar="PORT", short="p")
    opts.make_parser(group, "daemon_socket", metavar="PATH")
    opts.make_parser(group, "confdir", metavar="PATH")


def approute(opts):
    parser = argparse.ArgumentParser(
        usage="%(prog)s [options] command",
        description="Control per-application routing of the proxy daemon.",
    )
    common_options(parser, opts)

    commands = parser.add_subparsers(dest="command", metavar="command")

    commands.add_parser("status", help="Show the proxy daemon's status.")
    commands.add_parser(
        "apps", help="List proxied apps and other running processes."
    )

    p = commands.add_parser("mode", help="Switch the proxy mode.")
    p.add_argument("mode", choices=PROXY_MODES)

    p = commands.add_parser(
        "proxy", help="Route an application (path or process name) through the proxy."
    )
    p.add_argument("path")
    p.add_argument("--name", default=None, help="Display name for the app.")

    p = commands.add_parser("direct", help="Stop routing an application through the proxy.")
    p.add_argument("path")

    commands.add_parser("clear", help="Remove all app rules.")
    commands.add_parser("profiles", help="List outbound profiles.")

    p = commands.add_parser("activate", help="Select the active outbound profile.")
    p.add_argument("tag")

    p = commands.add_parser("remove", help="Remove an outbound profile.")
    p.add_argument("tag")

    p = commands.add_parser("import-links", help="Import outbounds from share links.")
    p.add_argument("links", nargs="+", metavar="LINK")

    p = commands.add_parser(
        "import-json", help="Import outbounds from a JSON file ('-' for stdin)."
    )
    p.add_argument("file", type=argparse.FileType("r", encoding="utf8"))

    p = commands.add_parser("logs", help="Print the tail of the proxy log.")
    p.add_argument("--limit", type=int, default=None)

    return parser
