"""
Command-line options for krill.

Options in the KRILL_OPTIONS environment variable are read first, so the
command line can override them.
"""
import argparse
import shlex

from krill import __version__
from krill.manpage import DEFAULT_RELOAD_COMMAND
from krill.refs import DEFAULT_APROPOS_COMMAND, DEFAULT_VERIFY_COMMAND
from krill.wrap import DEFAULT_TAB_WIDTH


def positive_int(value: str) -> int:
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="krill",
        description="Page through files, pipes and manual pages.",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="Files to page; stdin if none.")
    parser.add_argument("-a", "--load-apropos", action="store_true",
                        help="Validate references against the apropos listing.")
    parser.add_argument("-c", "--chop-lines", action="store_true",
                        help="Chop long lines instead of wrapping them.")
    parser.add_argument("-i", "--case-sensitive", action="store_true",
                        help="Make searches case sensitive.")
    parser.add_argument("-I", "--man-case", action="store_true",
                        help="Treat manual page names as case sensitive.")
    parser.add_argument("-l", "--log-file", metavar="PATH", help="Write a debug log to PATH.")
    parser.add_argument("-n", "--line-numbers", action="store_true", help="Show line numbers.")
    parser.add_argument("-o", "--output-file", metavar="PATH",
                        help="Copy everything read from the input to PATH.")
    parser.add_argument("-s", "--search", metavar="STRING", help="Search for STRING at startup.")
    parser.add_argument("-t", "--tab-width", type=positive_int, default=DEFAULT_TAB_WIDTH,
                        metavar="N", help="Tab width (default %(default)s).")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-V", "--no-verify", action="store_true",
                        help="Accept every reference without validating it.")
    parser.add_argument("--no-color", action="store_true", help="Do not use colors.")
    parser.add_argument("--theme", help="Color theme to start with.")
    parser.add_argument("--reload-command", default=DEFAULT_RELOAD_COMMAND, metavar="CMD",
                        help="Command that formats manual pages (default %(default)r).")
    parser.add_argument("--verify-command", default=DEFAULT_VERIFY_COMMAND, metavar="CMD",
                        help="Command that validates a reference (default %(default)r).")
    parser.add_argument("--apropos-command", default=DEFAULT_APROPOS_COMMAND, metavar="CMD",
                        help="Command listing all manual pages.")
    return parser


def parse_options(argv, environ) -> argparse.Namespace:
    """Parse KRILL_OPTIONS followed by argv."""
    args = shlex.split(environ.get("KRILL_OPTIONS", "")) + list(argv)
    return build_parser().parse_args(args)
