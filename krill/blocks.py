"""
Block cache: lazily buffers a byte source in fixed-size blocks.

Blocks live in an arena (a list ordered by start offset) and are never
dropped while the document lives.  The cache keeps a cursor (pos)
and the index of the block that most likely contains it.  Positioning only
marks the cache unaligned; the block that holds the cursor is searched for
once, on the next byte read, by walking from the cached block.
"""
from krill import logger
from krill.errors import IntegrityError

NEWLINE = 0x0a


class Block:
    __slots__ = ("start", "data")

    def __init__(self, start: int):
        self.start = start
        self.data = bytearray()

    @property
    def end(self) -> int:
        return self.start + len(self.data)

    def __contains__(self, pos: int) -> bool:
        return self.start <= pos < self.start + len(self.data)


class BlockCache:
    def __init__(self, source, lines, tee=None):
        self.source = source
        self.lines = lines
        self.tee = tee
        self.blksize = source.blksize
        self.blocks = []
        self.current = 0
        self.seek = 0
        self.pos = 0
        self.unaligned = False
        self._newline_pending = False

    @property
    def size(self):
        return self.source.size

    def free_space(self) -> int:
        """Unfilled bytes in the most recently allocated block."""
        if not self.blocks:
            return 0
        return self.blksize - len(self.blocks[-1].data)

    def at_eof(self) -> bool:
        return self.size is not None and self.seek >= self.size

    def fill(self) -> int:
        """
        Perform one read from the source into the last block, allocating a
        new block when it is full.  Return the number of bytes read; 0 means
        end of stream, at which point the source size is latched.
        """
        if self.source.closed or self.at_eof():
            return 0
        free = self.free_space()
        if free == 0:
            self.blocks.append(Block(self.seek))
            free = self.blksize
        if self.size is not None:
            free = min(free, self.size - self.seek)
        data = self.source.read(free)
        if not data:
            logger.log(f"{self.source.name or '*stdin*'}: end of stream at {self.seek}")
            self.source.latch_size(self.seek)
            return 0
        self._record_lines(data)
        if self.tee is not None:
            self.tee.write(data)
        self.blocks[-1].data += data
        self.seek += len(data)
        return len(data)

    def _record_lines(self, data: bytes) -> None:
        # A newline as the very last byte read is recorded only once more
        # data shows up, so no line start ever equals the end of data.
        if self._newline_pending:
            self.lines.record(self.seek)
        last = len(data) - 1
        i = data.find(b"\n")
        while i != -1 and i < last:
            self.lines.record(self.seek + i + 1)
            i = data.find(b"\n", i + 1)
        self._newline_pending = data[-1] == NEWLINE

    def read_all(self) -> None:
        while self.fill():
            pass

    def set_pos(self, pos: int) -> None:
        if pos < 0:
            raise IntegrityError(f"negative position {pos}")
        while pos > self.seek and self.fill():
            pass
        if self.size is not None and pos > self.size:
            raise IntegrityError(f"position {pos} beyond end of data ({self.size})")
        self.pos = pos
        self.unaligned = True

    def _align(self) -> None:
        """Make self.current the block containing pos, or the last block."""
        self.unaligned = False
        if not self.blocks:
            return
        if self.pos >= self.seek:
            self.current = len(self.blocks) - 1
            return
        n = len(self.blocks)
        i = self.current % n
        steps = 0
        while self.pos not in self.blocks[i]:
            if self.pos < self.blocks[i].start:
                i = (i - 1) % n
            else:
                i = (i + 1) % n
            steps += 1
            if steps > n:
                raise IntegrityError(f"endless loop aligning block ring to {self.pos}")
        self.current = i

    def _block_at_pos(self):
        """Return the cached block holding pos, reading more if needed, or None at EOF."""
        if self.unaligned:
            self._align()
        missed = False
        while True:
            if self.blocks:
                blk = self.blocks[self.current]
                if self.pos in blk:
                    return blk
                if self.pos == blk.end and self.current + 1 < len(self.blocks):
                    self.current += 1
                    continue
                if self.pos < self.seek:
                    self._align()
                    continue
            if self.size is not None and self.pos >= self.size:
                return None
            if missed:
                raise IntegrityError(f"unexpected recursion reading byte at {self.pos}")
            if not self.fill():
                return None
            self.current = len(self.blocks) - 1
            missed = True

    def getch(self):
        """Return the byte at the cursor and advance, or None at end of data."""
        blk = self._block_at_pos()
        if blk is None:
            return None
        ch = blk.data[self.pos - blk.start]
        self.pos += 1
        return ch

    def byte_at(self, pos: int):
        self.set_pos(pos)
        return self.getch()

    def ungetch(self) -> None:
        if self.pos == 0:
            return
        self.pos -= 1
        if self.blocks and not self.unaligned and self.pos < self.blocks[self.current].start:
            self.current -= 1

    def peek(self):
        """Byte at the cursor without moving it."""
        ch = self.getch()
        if ch is not None:
            self.ungetch()
        return ch

    def peek_back(self):
        """Byte before the cursor, or None at the start of data."""
        if self.pos == 0:
            return None
        self.ungetch()
        return self.getch()

    def read_line(self):
        """
        Read from the cursor up to and including the next newline.
        Returns the bytes read; empty at end of data.
        """
        out = bytearray()
        while True:
            blk = self._block_at_pos()
            if blk is None:
                break
            offset = self.pos - blk.start
            nl = blk.data.find(b"\n", offset)
            if nl != -1:
                out += blk.data[offset:nl + 1]
                self.pos = blk.start + nl + 1
                break
            out += blk.data[offset:]
            self.pos = blk.end
        return bytes(out)

    def goto_bol(self) -> None:
        """Move the cursor back to the start of its line."""
        while self.pos > 0 and self.peek_back() != NEWLINE:
            self.ungetch()

    def set_prev_line(self) -> None:
        """Move the cursor to the start of the previous line."""
        self.goto_bol()
        if self.pos > 0:
            self.ungetch()
            self.goto_bol()
