"""
Line-start index and the Line value object.
"""
from bisect import bisect_right
from dataclasses import dataclass, field

from krill.errors import IntegrityError
from krill.normalize import normalize


class LineIndex:
    """
    Sorted offsets of every line start seen so far.  Entry 0 is always 0.
    Offsets are only ever appended, in strictly increasing order.
    """

    def __init__(self):
        self._starts = [0]

    def record(self, offset: int) -> None:
        if offset == 0:
            return
        last = self._starts[-1]
        if offset <= last:
            raise IntegrityError(f"line start {offset} recorded after {last}")
        self._starts.append(offset)

    def __len__(self) -> int:
        return len(self._starts)

    def __getitem__(self, n: int) -> int:
        return self._starts[n]

    @property
    def last(self) -> int:
        return self._starts[-1]

    def line_of(self, pos: int) -> int:
        """
        1-based number of the line containing pos: the line whose start is
        <= pos and whose successor starts after pos.
        """
        return bisect_right(self._starts, pos)


@dataclass
class Line:
    """One logical line: raw bytes from pos up to and including its newline."""
    pos: int
    raw: bytes
    normalized: bytes = field(default=None, repr=False)

    def __post_init__(self):
        if self.normalized is None:
            self.normalized = normalize(self.raw)

    @property
    def end(self) -> int:
        return self.pos + len(self.raw)

    @property
    def text(self) -> bytes:
        """Normalized text without the trailing newline."""
        if self.normalized.endswith(b"\n"):
            return self.normalized[:-1]
        return self.normalized

    def normalized_offset(self, pos: int) -> int:
        """Offset into the normalized text that corresponds to absolute pos."""
        return len(normalize(self.raw, pos - self.pos))

    def cut(self, pos: int) -> "Line":
        """Return the head of this line ending before absolute pos."""
        if pos < self.pos or pos > self.end:
            raise IntegrityError(f"cannot cut line [{self.pos}..{self.end}] at {pos}")
        return Line(self.pos, self.raw[:pos - self.pos])
