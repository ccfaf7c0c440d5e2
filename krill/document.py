"""
Documents and the ring of open documents.

A Document ties one byte source to its block cache, line index, outline
and search state.  The cursor (pos) belongs to the document; every
scanning operation is a method on it, and operations that only look
something up restore the cursor before returning.
"""
from dataclasses import dataclass

from krill import logger
from krill.blocks import BlockCache
from krill.errors import IntegrityError
from krill.lines import Line, LineIndex
from krill.search import Mode
from krill.toc import build_toc
from krill.wrap import DEFAULT_TAB_WIDTH, segments

NUMBER_GUTTER = 8


@dataclass
class View:
    """Geometry and display switches of the text area."""
    rows: int = 24
    cols: int = 80
    tab_width: int = DEFAULT_TAB_WIDTH
    chop: bool = False
    line_numbers: bool = False
    shift: int = 0

    @property
    def text_cols(self) -> int:
        if self.line_numbers:
            return max(1, self.cols - NUMBER_GUTTER)
        return max(1, self.cols)


@dataclass
class Row:
    """One screen row: the raw span [start, end) of line."""
    line: Line
    start: int
    end: int

    @property
    def first(self) -> bool:
        return self.start == self.line.pos


class Document:
    def __init__(self, name: str, source, tee=None, synthetic: bool = False):
        self.name = name
        self.source = source
        self.lines = LineIndex()
        self.cache = BlockCache(source, self.lines, tee)
        self.tee = tee
        self.synthetic = synthetic
        self.manpage = False
        self.needs_reload = False
        self.page_first = 0
        self.page_last = 0
        self.mode = Mode.INITIAL
        self.current_match = None
        self.toc = None

    def __repr__(self):
        return f"Document({self.display_name!r})"

    @property
    def display_name(self) -> str:
        return self.name or "*stdin*"

    # Cursor ---------------------------------------------------------------

    @property
    def pos(self) -> int:
        return self.cache.pos

    def set_pos(self, pos: int) -> None:
        self.cache.set_pos(pos)

    @property
    def size(self):
        return self.cache.size

    def read_all(self) -> None:
        self.cache.read_all()

    def at_end(self, pos: int) -> bool:
        """True if there is no data at or after pos."""
        saved = self.pos
        self.cache.set_pos(pos)
        ch = self.cache.peek()
        self.cache.set_pos(saved)
        return ch is None

    @property
    def line_count(self) -> int:
        self.read_all()
        return len(self.lines)

    def line_number_of(self, pos: int) -> int:
        """1-based number of the line that contains pos."""
        if pos > self.cache.seek:
            self.read_all()
            if pos > self.size:
                raise IntegrityError(f"position {pos} beyond end of {self.display_name} ({self.size})")
        if pos == self.cache.seek:
            # A newline ending the data read so far records its successor
            # only once more data is seen.
            saved = self.pos
            self.cache.set_pos(pos)
            self.cache.peek()
            self.cache.set_pos(saved)
        return self.lines.line_of(pos)

    # Line materialization -------------------------------------------------

    def next_line(self):
        """The line starting at the cursor; the cursor moves past it.  None at the end."""
        start = self.pos
        raw = self.cache.read_line()
        if not raw:
            return None
        return Line(start, raw)

    def line_start(self, pos: int) -> int:
        """Offset of the start of the line containing pos."""
        if pos < self.cache.seek:
            return self.lines[self.lines.line_of(pos) - 1]
        saved = self.pos
        self.cache.set_pos(pos)
        self.cache.goto_bol()
        start = self.pos
        self.cache.set_pos(saved)
        return start

    def line_at(self, pos: int):
        """The whole line containing pos, or None at the end.  The cursor is kept."""
        if self.at_end(pos):
            return None
        saved = self.pos
        self.cache.set_pos(self.line_start(pos))
        line = self.next_line()
        self.cache.set_pos(saved)
        return line

    def prev_line(self):
        """The line before the cursor's line; the cursor moves to its start."""
        self.cache.set_pos(self.line_start(self.pos))
        if self.pos == 0:
            return None
        self.cache.set_prev_line()
        start = self.pos
        line = self.next_line()
        self.cache.set_pos(start)
        return line

    def lines_from(self, pos: int):
        """Iterate lines from the one containing pos to the end."""
        line = self.line_at(pos)
        while line is not None:
            yield line
            line = self.line_at(line.end)

    # Screen rows ----------------------------------------------------------

    def row_starts(self, line: Line, view: View) -> list:
        spans = segments(line.raw, view.text_cols, view.tab_width, view.chop)
        return [line.pos + start for start, _ in spans]

    def forward(self, start: int, n: int, view: View) -> int:
        """Start of the screen row n rows below the row at start."""
        pos = start
        line = self.line_at(pos)
        while n > 0 and line is not None:
            later = [r for r in self.row_starts(line, view) if r > pos]
            if later:
                pos = later[0]
            else:
                following = self.line_at(line.end)
                if following is None:
                    break
                line = following
                pos = line.pos
            n -= 1
        return pos

    def backward(self, start: int, n: int, view: View) -> int:
        """Start of the screen row n rows above the row at start."""
        pos = start
        line = self.line_at(pos)
        if line is None or line.pos == pos:
            if pos == 0:
                return 0
            line = self.line_at(pos - 1)
        while n > 0:
            earlier = [r for r in self.row_starts(line, view) if r < pos]
            if earlier:
                k = min(n, len(earlier))
                pos = earlier[-k]
                n -= k
                continue
            if line.pos == 0:
                break
            line = self.line_at(line.pos - 1)
            pos = line.end
        return pos

    def rows(self, start: int, count: int, view: View) -> list:
        """Up to count screen rows beginning with the row at start."""
        out = []
        line = self.line_at(start)
        while line is not None and len(out) < count:
            spans = segments(line.raw, view.text_cols, view.tab_width, view.chop)
            for s, e in spans:
                if line.pos + s < start:
                    continue
                out.append(Row(line, line.pos + s, line.pos + e))
                if len(out) == count:
                    break
            line = self.line_at(line.end)
        return out

    def page(self, view: View) -> list:
        """The rows of the current page; updates page_last."""
        rows = self.rows(self.page_first, view.rows, view)
        self.page_last = rows[-1].end if rows else self.page_first
        return rows

    def refresh_page(self, view: View) -> None:
        if self.mode & Mode.TOC and self.toc is not None:
            self.toc.page(view.rows)
        else:
            self.page(view)

    def is_on_page(self, pos: int, view: View) -> bool:
        if self.mode & Mode.TOC and self.toc is not None:
            i = self.toc.index_at(self.line_start(pos))
            return i is not None and i in self.toc.page(view.rows)
        if self.page_first <= pos < self.page_last:
            return True
        # The end of the data is visible with the last row.
        return pos == self.page_last and self.at_end(pos)

    # Page movement --------------------------------------------------------

    def page_down(self, view: View) -> bool:
        self.page(view)
        if self.at_end(self.page_last):
            return False
        self.page_first = self.page_last
        return True

    def page_up(self, view: View) -> None:
        self.page_first = self.backward(self.page_first, view.rows, view)

    def line_down(self, view: View, n: int = 1) -> None:
        self.page(view)
        if self.at_end(self.page_last):
            return
        self.page_first = self.forward(self.page_first, n, view)

    def line_up(self, view: View, n: int = 1) -> None:
        self.page_first = self.backward(self.page_first, n, view)

    def goto_start(self) -> None:
        self.page_first = 0

    def goto_end(self, view: View) -> None:
        self.read_all()
        self.page_first = self.backward(self.size, view.rows, view)

    def realign(self) -> None:
        """Put page_first back on a line start, e.g. after the width changed."""
        if self.size is not None and self.page_first > self.size:
            self.page_first = self.size
        self.page_first = self.line_start(self.page_first)

    # Outline --------------------------------------------------------------

    def build_toc(self):
        self.toc = build_toc(self)
        self.toc.fit_level()
        return self.toc

    # Life cycle -----------------------------------------------------------

    def adopt(self, other: "Document") -> None:
        """Replace all data with that of other, a freshly read document (reload)."""
        self.source.close()
        self.source = other.source
        self.lines = other.lines
        self.cache = other.cache
        self.cache.tee = self.tee
        self.current_match = None
        self.mode &= ~Mode.HIGHLIGHT
        logger.log(f"reloaded {self.display_name}")

    def close(self) -> None:
        self.source.close()
        if self.tee is not None:
            self.tee.flush()
        logger.log(f"closed {self.display_name}")


class DocumentRing:
    """Open documents; new ones are inserted before the current one."""

    def __init__(self):
        self.docs = []
        self.index = 0

    def __len__(self) -> int:
        return len(self.docs)

    def __iter__(self):
        return iter(self.docs)

    @property
    def current(self):
        if not self.docs:
            return None
        return self.docs[self.index]

    def find(self, name: str):
        for doc in self.docs:
            if doc.name == name:
                return doc
        return None

    def add(self, doc: Document) -> Document:
        """Insert doc before the current document and make it current."""
        self.docs.insert(self.index, doc)
        logger.log(f"opened {doc.display_name}")
        return doc

    def switch(self, doc: Document) -> None:
        self.index = self.docs.index(doc)

    def next(self):
        if self.docs:
            self.index = (self.index + 1) % len(self.docs)
        return self.current

    def prev(self):
        if self.docs:
            self.index = (self.index - 1) % len(self.docs)
        return self.current

    def kill(self):
        """Close and remove the current document; its successor becomes current."""
        doc = self.docs.pop(self.index)
        doc.close()
        if self.docs:
            self.index %= len(self.docs)
        else:
            self.index = 0
        return self.current

    def others(self):
        """Every document except the current one, nearest predecessor first."""
        n = len(self.docs)
        return [self.docs[(self.index - k) % n] for k in range(1, n)]

    def close_all(self) -> None:
        while self.docs:
            self.kill()
