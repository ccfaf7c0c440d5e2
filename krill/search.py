"""
Search engine: regular expression search over a document.

Patterns are matched against the normalized text of one line at a time;
match offsets are translated back to absolute raw offsets with
normalize_count().  Reference search uses one fixed pattern for
name(section) tokens and only accepts references the ReferenceCache
confirms.  After a hit the view is aligned to it, either emacs style
(context) or with the match on the first row (top).
"""
import enum
import re
from dataclasses import dataclass

from krill import logger
from krill.errors import PatternError
from krill.normalize import char_length, normalize, normalize_count
from krill.refs import REFERENCE_REGEX

NOT_FOUND = "Pattern not found"


class Mode(enum.IntFlag):
    INITIAL = 0
    REFS = 1
    SEARCH = 2
    TOC = 4
    HIGHLIGHT = 8


SEARCH_OR_REFS = Mode.REFS | Mode.SEARCH


class Strategy(enum.Enum):
    CONTEXT = "context"
    TOP = "top"

    def flipped(self) -> "Strategy":
        return Strategy.TOP if self is Strategy.CONTEXT else Strategy.CONTEXT


@dataclass(frozen=True)
class Match:
    start: int
    end: int


def _spans(regex, line, offset: int = 0):
    """
    Yield (start, end) of every match in the normalized text of line from
    offset on.  A zero-length match is widened by one character so the next
    scan starts past it.
    """
    text = line.text
    limit = len(text)
    while offset <= limit:
        m = regex.search(text, offset)
        if m is None:
            return
        start, end = m.span()
        if end == start and end < len(line.normalized):
            end += char_length(line.normalized, end)
        yield start, end
        if end == start:
            return
        offset = end


def _to_raw(line, start: int, end: int) -> Match:
    return Match(line.pos + normalize_count(line.raw, start),
                 line.pos + normalize_count(line.raw, end))


def reference_name(line, match: Match) -> str:
    """The normalized text of a reference match inside line."""
    raw = line.raw[match.start - line.pos:match.end - line.pos]
    return normalize(raw).decode("utf-8", "replace")


class SearchEngine:
    def __init__(self, references, case_sensitive: bool = False,
                 strategy: Strategy = Strategy.CONTEXT):
        self.references = references
        self.case_sensitive = case_sensitive
        self.strategy = strategy
        self.pattern = None
        self.regex = None
        self._compiled = {}

    def compile(self, pattern: str, case_sensitive: bool = None):
        """Compile pattern; each distinct pattern and case setting is compiled once."""
        if case_sensitive is None:
            case_sensitive = self.case_sensitive
        key = (pattern, case_sensitive)
        regex = self._compiled.get(key)
        if regex is None:
            flags = 0 if case_sensitive else re.IGNORECASE
            try:
                regex = re.compile(pattern.encode("utf-8"), flags)
            except re.error as e:
                raise PatternError(pattern, str(e))
            self._compiled[key] = regex
        return regex

    def set_pattern(self, pattern: str) -> None:
        """Make pattern the current search pattern (raises PatternError)."""
        self.regex = self.compile(pattern)
        self.pattern = pattern
        logger.log(f"search pattern: {pattern!r}")

    def recompile(self) -> None:
        """Compile the current pattern again after the case setting changed."""
        if self.pattern is not None:
            self.regex = self.compile(self.pattern)

    def regex_for(self, mode: Mode):
        return REFERENCE_REGEX if mode & Mode.REFS else self.regex

    def validator(self, mode: Mode):
        if not mode & Mode.REFS:
            return None
        return lambda line, match: self.references.validate(reference_name(line, match))

    # Line iteration -------------------------------------------------------

    def _lines_forward(self, doc, start: int, toc=None):
        if toc is None:
            line = doc.line_at(start)
            while line is not None:
                yield line
                line = doc.line_at(line.end)
            return
        i = toc.index_at(doc.line_start(start))
        if i is None:
            i = toc.move_to_next(start)
        while i is not None:
            yield doc.line_at(toc.nodes[i].pos)
            i = toc.next_visible(i)

    def _lines_backward(self, doc, start: int, toc=None):
        if start <= 0:
            return
        bol = doc.line_start(start)
        if start > bol and (toc is None or toc.index_at(bol) is not None):
            yield doc.line_at(bol).cut(start)
        if toc is None:
            pos = bol
            while pos > 0:
                line = doc.line_at(pos - 1)
                yield line
                pos = line.pos
            return
        i = toc.move_to_prev(bol)
        while i is not None:
            yield doc.line_at(toc.nodes[i].pos)
            i = toc.prev_visible(i)

    # Scanning -------------------------------------------------------------

    def find_forward(self, doc, regex, start: int, validate=None, toc=None):
        """First acceptable match at or after start, or None."""
        for line in self._lines_forward(doc, start, toc):
            offset = line.normalized_offset(start) if start > line.pos else 0
            for s, e in _spans(regex, line, offset):
                match = _to_raw(line, s, e)
                if validate is None or validate(line, match):
                    return match
        return None

    def find_backward(self, doc, regex, start: int, validate=None, toc=None):
        """Last acceptable match before start, or None."""
        for line in self._lines_backward(doc, start, toc):
            best = None
            for s, e in _spans(regex, line):
                match = _to_raw(line, s, e)
                if match.start >= start:
                    break
                if validate is None or validate(line, match):
                    best = match
            if best is not None:
                return best
        return None

    def line_matches(self, line, regex, validate=None) -> list:
        """All acceptable matches in line, left to right, for highlighting."""
        matches = []
        for s, e in _spans(regex, line):
            match = _to_raw(line, s, e)
            if validate is None or validate(line, match):
                matches.append(match)
        return matches

    # Commands on a document -----------------------------------------------

    def _search_start(self, doc, view, mode: Mode, forward: bool) -> int:
        match = doc.current_match
        if doc.mode & Mode.HIGHLIGHT and match is not None and doc.is_on_page(match.start, view):
            if forward and doc.mode & mode:
                return match.end
            return match.start
        if doc.mode & Mode.TOC:
            entries = doc.toc.page(view.rows)
            return doc.toc.nodes[entries[0]].pos if entries else 0
        return doc.page_first

    def search_next(self, doc, view, mode: Mode = Mode.SEARCH) -> bool:
        """Find the next match after the current one (or the page top) and show it."""
        regex = self.regex_for(mode)
        if regex is None:
            return False
        doc.refresh_page(view)
        start = self._search_start(doc, view, mode, True)
        toc = doc.toc if doc.mode & Mode.TOC else None
        match = self.find_forward(doc, regex, start, self.validator(mode), toc)
        return self._found(doc, view, mode, match)

    def search_prev(self, doc, view, mode: Mode = Mode.SEARCH) -> bool:
        """Find the match before the current one (or the page top) and show it."""
        regex = self.regex_for(mode)
        if regex is None:
            return False
        doc.refresh_page(view)
        start = self._search_start(doc, view, mode, False)
        toc = doc.toc if doc.mode & Mode.TOC else None
        match = self.find_backward(doc, regex, start, self.validator(mode), toc)
        return self._found(doc, view, mode, match)

    def _found(self, doc, view, mode: Mode, match) -> bool:
        if match is None:
            return False
        doc.mode = (doc.mode & ~SEARCH_OR_REFS) | mode | Mode.HIGHLIGHT
        doc.current_match = match
        self.align(doc, view)
        return True

    def matches_on_page(self, doc, view, rows_or_lines) -> list:
        """Matches to highlight in the given lines, honoring the document's mode."""
        if not doc.mode & Mode.HIGHLIGHT:
            return []
        mode = Mode.REFS if doc.mode & Mode.REFS else Mode.SEARCH
        regex = self.regex_for(mode)
        if regex is None:
            return []
        validate = self.validator(mode)
        out = []
        for line in rows_or_lines:
            out.extend(self.line_matches(line, regex, validate))
        return out

    # Alignment ------------------------------------------------------------

    def align(self, doc, view, strategy: Strategy = None) -> None:
        """Scroll so the current match is visible, by the given or active strategy."""
        match = doc.current_match
        if match is None:
            return
        strategy = strategy or self.strategy
        if doc.mode & Mode.TOC:
            self._align_toc(doc, view, match, strategy)
        else:
            self._align_page(doc, view, match, strategy)

    def _align_page(self, doc, view, match: Match, strategy: Strategy) -> None:
        bol = doc.line_start(match.start)
        if strategy is Strategy.TOP:
            doc.page_first = bol
            return
        doc.refresh_page(view)
        half = max(1, view.rows // 2)
        if doc.is_on_page(match.start, view):
            bottom = doc.line_number_of(max(doc.page_last - 1, 0))
            if doc.line_number_of(match.start) == bottom:
                doc.page_first = doc.forward(doc.page_first, half, view)
            return
        doc.page_first = doc.backward(bol, half, view)

    def _align_toc(self, doc, view, match: Match, strategy: Strategy) -> None:
        toc = doc.toc
        i = toc.index_at(doc.line_start(match.start))
        if i is None:
            return
        if strategy is Strategy.TOP:
            toc.first = i
            toc.cursor = 0
            return
        entries = toc.page(view.rows)
        half = max(1, view.rows // 2)
        if entries and i == entries[-1] and toc.last is not None:
            toc.step(half)
        elif i not in entries:
            toc.first = i
            toc.step(-half)
