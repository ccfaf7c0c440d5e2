"""
Screen wrapping: split a logical line into rows of a given width.

Wrapping counts columns only: tabs expand to the next tab stop, each
decoded character contributes its wcwidth, control characters are shown
in caret notation and take two columns.  Control sequences take no
columns.
"""
from wcwidth import wcwidth

from krill.normalize import decode_char, skip_controls

DEFAULT_TAB_WIDTH = 8


def is_caret(ch: str) -> bool:
    """Characters the renderer draws as ^X."""
    return ch != "\t" and ch != "\n" and (ord(ch) < 0x20 or ch == "\x7f")


def caret(ch: str) -> str:
    return "^" + chr(ord(ch) ^ 0x40)


def char_cells(ch: str, col: int, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
    """Columns taken by ch when drawn at column col."""
    if ch == "\t":
        return tab_width - col % tab_width
    if is_caret(ch):
        return 2
    w = wcwidth(ch)
    if w < 0:
        return 1
    return w


def wrap_offsets(raw: bytes, width: int, tab_width: int = DEFAULT_TAB_WIDTH) -> list:
    """
    Offsets into raw where each screen row of the line starts.  The first
    offset is always 0.  A row holding nothing but the trailing newline is
    never produced.
    """
    offsets = [0]
    if width <= 0:
        return offsets
    end = len(raw)
    col = 0
    i = 0
    while i < end:
        group = i
        i = skip_controls(raw, i, end)
        if i >= end:
            break
        ch, n = decode_char(raw, i, end)
        if ch == "\n":
            break
        w = char_cells(ch, col, tab_width)
        if col + w > width and col > 0:
            offsets.append(group)
            col = 0
            w = char_cells(ch, 0, tab_width)
        col += w
        i += n
    return offsets


def segments(raw: bytes, width: int, tab_width: int = DEFAULT_TAB_WIDTH, chop: bool = False) -> list:
    """(start, end) raw offsets of each screen row of the line."""
    if chop:
        return [(0, len(raw))]
    offsets = wrap_offsets(raw, width, tab_width)
    bounds = offsets[1:] + [len(raw)]
    return list(zip(offsets, bounds))


def column_offset(raw: bytes, start: int, end: int, col: int, tab_width: int = DEFAULT_TAB_WIDTH):
    """
    Offset into raw of the character drawn over column col of the row
    raw[start:end], counting from the row's first column.  None past the
    last character.
    """
    x = 0
    i = start
    while i < end:
        group = i
        i = skip_controls(raw, i, end)
        if i >= end:
            break
        ch, n = decode_char(raw, i, end)
        if ch == "\n":
            break
        x += char_cells(ch, x, tab_width)
        if col < x:
            return group
        i += n
    return None
