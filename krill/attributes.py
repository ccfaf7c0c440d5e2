"""
Display attributes decoded from raw line bytes.

The renderer needs, for every character of a line, the attributes the
control sequences in front of it ask for: SGR sequences switch bold,
underline, colors and so on; overstrike pairs mark single characters
bold (c BS c) or underlined (_ BS c).
"""
from collections import namedtuple
from dataclasses import dataclass, replace

from krill.normalize import char_length, decode_char, is_overstrike, sgr_length


@dataclass(frozen=True)
class Attr:
    bold: bool = False
    dim: bool = False
    italic: bool = False
    underline: bool = False
    blink: bool = False
    reverse: bool = False
    invisible: bool = False
    fg: int = None
    bg: int = None


PLAIN = Attr()

Cell = namedtuple("Cell", "offset char attr")


def apply_sgr(params, attr: Attr) -> Attr:
    """Apply the parameters of one SGR sequence to attr."""
    codes = [int(p) if p else 0 for p in params.split(b";")] if params else [0]
    for code in codes:
        if code == 0:
            attr = PLAIN
        elif code == 1:
            attr = replace(attr, bold=True)
        elif code == 2:
            attr = replace(attr, dim=True)
        elif code == 3:
            attr = replace(attr, italic=True)
        elif code in (4, 9, 21):
            attr = replace(attr, underline=True)
        elif code in (5, 6):
            attr = replace(attr, blink=True)
        elif code == 7:
            attr = replace(attr, reverse=True)
        elif code == 8:
            attr = replace(attr, invisible=True)
        elif code == 22:
            attr = replace(attr, bold=False, dim=False)
        elif code == 23:
            attr = replace(attr, italic=False)
        elif code == 24:
            attr = replace(attr, underline=False)
        elif code == 25:
            attr = replace(attr, blink=False)
        elif code == 27:
            attr = replace(attr, reverse=False)
        elif code == 28:
            attr = replace(attr, invisible=False)
        elif 30 <= code <= 37:
            attr = replace(attr, fg=code - 30)
        elif code == 39:
            attr = replace(attr, fg=None)
        elif 40 <= code <= 47:
            attr = replace(attr, bg=code - 40)
        elif code == 49:
            attr = replace(attr, bg=None)
        elif 90 <= code <= 97:
            attr = replace(attr, fg=code - 90 + 8)
        elif 100 <= code <= 107:
            attr = replace(attr, bg=code - 100 + 8)
    return attr


def decode_line(raw: bytes) -> list:
    """Cells (raw offset, character, attributes) for every payload character of raw."""
    cells = []
    attr = PLAIN
    end = len(raw)
    i = 0
    while i < end:
        n = sgr_length(raw, i, end)
        if n:
            attr = apply_sgr(raw[i + 2:i + n - 1], attr)
            i += n
            continue
        if is_overstrike(raw, i, end):
            # The last character of the chain is drawn at the offset of the first.
            first, _ = decode_char(raw, i, end)
            j = i
            while j < end:
                n = sgr_length(raw, j, end)
                if n:
                    attr = apply_sgr(raw[j + 2:j + n - 1], attr)
                    j += n
                elif is_overstrike(raw, j, end):
                    j += char_length(raw, j, end) + 1
                else:
                    break
            if j < end:
                char, n = decode_char(raw, j, end)
                if first == "_" and char != "_":
                    cells.append(Cell(i, char, replace(attr, underline=True)))
                else:
                    cells.append(Cell(i, char, replace(attr, bold=True)))
                j += n
            i = j
            continue
        char, n = decode_char(raw, i, end)
        cells.append(Cell(i, char, attr))
        i += n
    return cells
