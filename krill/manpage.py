"""
Manual pages: detection, formatting and reloading.

A manual page document is produced by running the formatter command (man
by default) on a pseudo-terminal the size of our window.  When the window
size changes, the page is formatted again for the new width.
"""
import re

from krill import logger
from krill.document import Document
from krill.errors import SourceError
from krill.refs import REFERENCE_PATTERN
from krill.source import PtySource, formatter_argv

DEFAULT_RELOAD_COMMAND = "man %s"

MANPAGE_HEADER = re.compile(REFERENCE_PATTERN + rb" {2,}.+ {2,}" + REFERENCE_PATTERN)


def detect_name(doc, case_sensitive: bool = False):
    """
    Name of the manual page in doc, taken from a header line like
    "LS(1)    User Commands    LS(1)", or None if doc is no manual page.
    """
    line = doc.line_at(0)
    if line is None:
        return None
    text = line.text.strip()
    if not MANPAGE_HEADER.search(text):
        return None
    name = text[:text.index(b")") + 1].decode("utf-8", "replace")
    return name if case_sensitive else name.lower()


def run_formatter(name: str, command: str, rows: int, cols: int):
    """
    Format name on a pseudo-terminal and read all of its output.
    Returns (document, exit_status).
    """
    source = PtySource(name, formatter_argv(command, name), rows, cols)
    doc = Document(name, source)
    doc.manpage = True
    try:
        doc.read_all()
    except SourceError:
        doc.close()
        raise
    status = source.process.wait()
    logger.log(f"formatted {name}: {doc.size} bytes, status {status}")
    return doc, status


def first_line_text(doc) -> str:
    line = doc.line_at(0)
    if line is None:
        return ""
    return line.text.decode("utf-8", "replace").strip()


def open_manpage(ring, name: str, command: str, rows: int, cols: int,
                 case_sensitive: bool = False):
    """
    Make the manual page name current, formatting it if it is not open yet.
    Returns (document, message); document is None if formatting failed.
    """
    existing = ring.find(name)
    if existing is not None:
        ring.switch(existing)
        return existing, None
    try:
        doc, status = run_formatter(name, command, rows, cols)
    except SourceError as e:
        logger.log(f"formatter failed: {e}")
        return None, str(e)
    if status != 0 or not doc.size:
        message = first_line_text(doc) or f"No manual entry for {name}"
        doc.close()
        return None, message
    detected = detect_name(doc, case_sensitive)
    if detected and detected != name:
        existing = ring.find(detected)
        if existing is not None:
            # The page was open under its canonical name already.
            doc.close()
            ring.switch(existing)
            return existing, None
        doc.name = detected
    ring.add(doc)
    return doc, None


def reload(doc, command: str, rows: int, cols: int) -> bool:
    """
    Format doc again for a new window size.  On failure the document keeps
    its current content and False is returned.
    """
    try:
        fresh, status = run_formatter(doc.name, command, rows, cols)
    except SourceError as e:
        logger.log(f"reload of {doc.name} failed: {e}")
        return False
    if status != 0 or not fresh.size:
        logger.log(f"reload of {doc.name} failed with status {status}")
        fresh.close()
        return False
    doc.adopt(fresh)
    doc.needs_reload = False
    if doc.toc is not None:
        level = doc.toc.level
        doc.build_toc()
        if doc.toc.has_visible(level):
            doc.toc.level = level
        doc.toc.rewind(0)
    doc.realign()
    return True
