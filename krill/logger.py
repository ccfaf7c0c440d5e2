"""
Logger module for the krill pager.

A small file-based logger for debugging a running session, plus safe
wrappers for curses output functions that catch and log curses errors.
Logging is off until a log file is set (the -l option).
"""
import curses
import datetime

LOG_FILE_PATH = None


def set_log_file(path) -> None:
    """Direct log messages to path, or switch logging off with None."""
    global LOG_FILE_PATH
    LOG_FILE_PATH = path


def log(message: str) -> None:
    """Append a timestamped message to the log file."""
    if LOG_FILE_PATH is None:
        return
    try:
        with open(LOG_FILE_PATH, 'a', encoding='utf-8') as f:
            timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            f.write(f"[{timestamp}] {message}\n")
    except OSError:
        # An unwritable log file must not take the pager down.
        pass


def safe_addstr(window, y: int, x: int, text: str, attr: int = 0) -> None:
    """
    Safely add a string to the curses window at the given position.
    Writing into the bottom right cell raises curses.error even though the
    text is drawn, so errors are only logged.
    """
    try:
        window.addstr(y, x, text, attr)
    except curses.error:
        log(f"curses.error in addstr at ({y},{x}): {text!r}")


def safe_addch(window, y: int, x: int, ch: str, attr: int = 0) -> None:
    """Safely add a character to the curses window at the given position."""
    try:
        window.addch(y, x, ch, attr)
    except curses.error:
        log(f"curses.error in addch at ({y},{x}): char={ch!r}")
