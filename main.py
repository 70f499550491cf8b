"""
    Main entry point for the local user audit tool.

    Usage:
      user-audit                 # human readable audit of uid 0 and uid >= 1000
      user-audit -u alice        # audit a single account
      user-audit -j              # JSON document
      user-audit -o /tmp/a.json  # write to a file instead of stdout

    Exit codes: 0 success, 1 usage error or help, 2 account not found.
    Reading lastb, chage and passwd -S for other users normally needs root;
    without it those fields are reported as unavailable.
"""
import argparse
import logging
import sys

from core.builder import build_report
from core.capabilities import detect_capabilities
from core.config import load_audit_config
from core.errors import ConfigError, UserNotFound
from core.report import write_report
from core.selector import select_users
from reports.formatter import format_json, format_text
from shared.system import get_system_info, is_linux

log = logging.getLogger("user_audit")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILURE = 1
EXIT_USER_NOT_FOUND = 2
EXIT_INTERRUPTED = 130


class UsageParser(argparse.ArgumentParser):
    """argparse with usage errors and -h both exiting 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


class _HelpAction(argparse.Action):
    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings=option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        parser.print_help(sys.stderr)
        parser.exit(EXIT_USAGE)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if n < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = UsageParser(
        prog="user-audit",
        description="Point-in-time security audit of local user accounts.",
        add_help=False,
    )
    parser.add_argument("-u", dest="user", metavar="username", help="Audit only this user")
    parser.add_argument("-j", dest="json", action="store_true", help="Output JSON (machine readable)")
    parser.add_argument("-o", dest="output", metavar="outfile",
                        help="Write output to file (otherwise prints to stdout)")
    parser.add_argument("-c", dest="config", metavar="config",
                        help="JSON configuration file (default: $USER_AUDIT_CONFIG)")
    parser.add_argument("-w", dest="workers", metavar="workers", type=_positive_int,
                        help="Audit up to this many users concurrently")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose diagnostics on stderr")
    parser.add_argument("-h", action=_HelpAction, help="Show this help")
    return parser


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    handler.set_name("user_audit")
    root = logging.getLogger()
    # main() may run more than once per process (tests); keep a single handler.
    for old in [h for h in root.handlers if h.get_name() == "user_audit"]:
        root.removeHandler(old)
    root.setLevel(level)
    root.addHandler(handler)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_audit_config(args.config)
    except ConfigError as e:
        log.error("%s", e)
        return EXIT_USAGE

    if not is_linux():
        log.warning("Running on %s; most account sources are Linux specific",
                    get_system_info()["os"])

    caps = detect_capabilities(config)

    try:
        users = select_users(config, args.user)
    except UserNotFound as e:
        log.error("Error: %s", e)
        return EXIT_USER_NOT_FOUND

    try:
        report = build_report(users, caps, config, workers=args.workers)
        text = format_json(report) if args.json else format_text(report)
        write_report(text, args.output)
    except KeyboardInterrupt:
        log.error("Interrupted, no report written")
        return EXIT_INTERRUPTED
    except OSError as e:
        log.error("Cannot write report: %s", e)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
