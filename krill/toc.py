"""
Outline (table of contents) for a document.

Headings are found by indentation alone, a heuristic tuned to formatted
manual pages:

  level 0  the line starts with anything but space, tab, '{', '}' or newline
  level 1  the line starts with exactly three spaces
  level 2  the line starts with exactly seven spaces and the line after it
           starts with at least eleven (the node marks the first of the two)

Other text gets approximate results; the thresholds are kept as they are.
The navigator works on the nodes whose level is at most the active level.
"""
from bisect import bisect_left, bisect_right
from dataclasses import dataclass

from krill import logger
from krill.errors import IntegrityError

LEVELS = 3
END = -1

_BLANK = b" \t\n"


@dataclass(frozen=True)
class TocNode:
    pos: int
    level: int


def heading_level(text: bytes, following: bytes = None):
    """Outline level of a normalized line, or None if it is no heading."""
    if not text:
        return None
    if text[0] not in b" \t{}\n":
        return 0
    if text.startswith(b"   ") and len(text) > 3 and text[3] not in _BLANK:
        return 1
    if (text.startswith(b" " * 7) and len(text) > 7 and text[7] not in _BLANK
            and following is not None and following.startswith(b" " * 11)):
        return 2
    return None


def build_toc(doc) -> "Toc":
    """Scan the whole document once and collect its headings."""
    toc = Toc()
    saved = doc.pos
    doc.set_pos(0)
    line = doc.next_line()
    while line is not None:
        following = doc.next_line()
        level = heading_level(line.normalized, following.normalized if following else None)
        if level is not None:
            toc.append(TocNode(line.pos, level))
        line = following
    doc.set_pos(saved)
    logger.log(f"outline for {doc.display_name}: {len(toc)} entries")
    return toc


class Toc:
    def __init__(self, nodes=None):
        self.nodes = []
        self.positions = []
        self.level = 0
        self.first = 0
        self.last = None
        self.cursor = 0
        for node in nodes or ():
            self.append(node)

    def append(self, node: TocNode) -> None:
        if self.nodes and node.pos <= self.nodes[-1].pos:
            raise IntegrityError(
                f"outline entry at {node.pos} after entry at {self.nodes[-1].pos}")
        self.nodes.append(node)
        self.positions.append(node.pos)

    def __len__(self) -> int:
        return len(self.nodes)

    def visible(self, i: int) -> bool:
        return self.nodes[i].level <= self.level

    def has_visible(self, level: int = None) -> bool:
        if level is None:
            level = self.level
        return any(node.level <= level for node in self.nodes)

    def next_visible(self, i: int):
        """Index of the first visible node after i, or None."""
        for j in range(i + 1, len(self.nodes)):
            if self.visible(j):
                return j
        return None

    def prev_visible(self, i: int):
        """Index of the last visible node before i, or None."""
        for j in range(min(i, len(self.nodes)) - 1, -1, -1):
            if self.visible(j):
                return j
        return None

    def _visible_from(self, i: int):
        if i < len(self.nodes) and self.visible(i):
            return i
        return self.next_visible(i)

    def _visible_through(self, i: int):
        if i >= 0 and self.visible(i):
            return i
        return self.prev_visible(i)

    def first_visible(self):
        return self.next_visible(-1)

    def last_visible(self):
        return self.prev_visible(len(self.nodes))

    def fit_level(self) -> None:
        """Pick the shallowest level that shows at least one entry."""
        for level in range(LEVELS):
            if self.has_visible(level):
                self.level = level
                return

    def cycle_level(self) -> int:
        """Switch to the next level (0, 1, 2, 0, ...) that shows entries."""
        for k in range(1, LEVELS + 1):
            level = (self.level + k) % LEVELS
            if self.has_visible(level):
                self.level = level
                break
        self.adjust_first()
        return self.level

    def adjust_first(self) -> None:
        """Move the page start to a visible entry, searching backward first."""
        if not self.nodes:
            return
        if self.first < len(self.nodes) and self.visible(self.first):
            return
        i = self.prev_visible(self.first)
        if i is None:
            i = self.next_visible(self.first)
        if i is None:
            raise IntegrityError("no visible outline entry at any position")
        self.first = i

    def rewind(self, pos: int = END, rows: int = 1) -> None:
        """
        Start the page at the first visible entry at or after pos.  With END,
        start it so that the last visible entry ends a full page.
        """
        self.cursor = 0
        if pos == END:
            i = self.last_visible()
            if i is None:
                return
            self.first = i
            self.step(-(rows - 1))
            return
        i = self._visible_from(bisect_left(self.positions, pos))
        if i is None:
            i = self.last_visible()
        if i is not None:
            self.first = i

    def step(self, n: int) -> int:
        """Move the page start by n visible entries; return how far it moved."""
        moved = 0
        while moved < abs(n):
            i = self.next_visible(self.first) if n > 0 else self.prev_visible(self.first)
            if i is None:
                break
            self.first = i
            moved += 1
        return moved

    def move_to_next(self, pos: int):
        """Index of the nearest visible entry after pos, or None."""
        return self._visible_from(bisect_right(self.positions, pos))

    def move_to_prev(self, pos: int):
        """Index of the nearest visible entry before pos, or None."""
        return self._visible_through(bisect_left(self.positions, pos) - 1)

    def index_at(self, line_start: int):
        """Index of the visible entry for the line starting at line_start, or None."""
        i = bisect_left(self.positions, line_start)
        if i < len(self.nodes) and self.positions[i] == line_start and self.visible(i):
            return i
        return None

    def page(self, rows: int) -> list:
        """Indexes of the visible entries on the page; also sets self.last."""
        out = []
        i = self.first if self.nodes and self.visible(self.first) else self.next_visible(self.first)
        while i is not None and len(out) < rows:
            out.append(i)
            i = self.next_visible(i)
        self.last = i
        return out

    def offset_at_cursor(self, rows: int) -> int:
        entries = self.page(rows)
        if not entries:
            return 0
        return self.nodes[entries[min(self.cursor, len(entries) - 1)]].pos

    def cursor_down(self, rows: int) -> None:
        entries = self.page(rows)
        if self.cursor + 1 < len(entries):
            self.cursor += 1
        elif self.last is not None:
            moved = self.step(max(1, rows // 2))
            self.cursor = len(entries) - moved

    def cursor_up(self, rows: int) -> None:
        if self.cursor > 0:
            self.cursor -= 1
        else:
            moved = self.step(-max(1, rows // 2))
            if moved:
                self.cursor = moved - 1
