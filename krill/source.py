"""
Byte sources: the readable inputs a document pages through.

A source either knows its total size up front (regular files, in-memory
text) or learns it when the stream ends (pipes, command output, a manual
page formatter writing to a pseudo-terminal).  Once a size is known it
never changes.
"""
import errno
import os
import shlex
import stat
import subprocess
import termios

from krill import logger
from krill.errors import SourceError

DEFAULT_BLKSIZE = 4096


class ByteSource:
    """Base class: a readable byte stream with an optional known size."""

    def __init__(self, name: str, size=None, blksize: int = DEFAULT_BLKSIZE):
        self.name = name
        self.size = size
        self.blksize = blksize or DEFAULT_BLKSIZE
        self.closed = False

    def read(self, n: int) -> bytes:
        """Read at most n bytes.  An empty result means end of stream."""
        raise NotImplementedError

    def latch_size(self, size: int) -> None:
        if self.size is None:
            self.size = size

    def close(self) -> None:
        self.closed = True


class MemorySource(ByteSource):
    """Source over bytes held in memory; used for synthetic documents."""

    def __init__(self, name: str, data: bytes, blksize: int = DEFAULT_BLKSIZE):
        super().__init__(name, len(data), blksize)
        self._data = bytes(data)
        self._offset = 0

    def read(self, n: int) -> bytes:
        chunk = self._data[self._offset:self._offset + n]
        self._offset += len(chunk)
        return chunk


class FdSource(ByteSource):
    """
    Source over an open file descriptor.

    pty marks the master side of a pseudo-terminal: once the child on the
    other side exits, reads fail with EIO, which is taken as end of stream.
    """

    def __init__(self, name: str, fd: int, size=None, pty: bool = False, owns_fd: bool = True):
        try:
            blksize = os.fstat(fd).st_blksize
        except OSError as e:
            raise SourceError(name, e.strerror)
        super().__init__(name, size, blksize)
        self.fd = fd
        self.pty = pty
        self.owns_fd = owns_fd
        self._prefix = b""

    def read(self, n: int) -> bytes:
        if self._prefix:
            chunk, self._prefix = self._prefix[:n], self._prefix[n:]
            return chunk
        try:
            return os.read(self.fd, n)
        except OSError as e:
            if e.errno == errno.EIO and self.pty:
                return b""
            raise SourceError(self.name, e.strerror)

    def prefetch(self) -> bool:
        """Read one byte ahead and keep it.  Return False on an empty stream."""
        self._prefix = self.read(1)
        return bool(self._prefix)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.owns_fd:
            os.close(self.fd)


class FileSource(FdSource):
    """A named file.  Regular files have a known size."""

    def __init__(self, path: str):
        try:
            fd = os.open(path, os.O_RDONLY)
        except OSError as e:
            raise SourceError(path, e.strerror)
        st = os.fstat(fd)
        if stat.S_ISDIR(st.st_mode):
            os.close(fd)
            raise SourceError(path, "is a directory")
        size = st.st_size if stat.S_ISREG(st.st_mode) else None
        super().__init__(path, fd, size=size)


class CommandSource(FdSource):
    """Standard output of a shell command."""

    def __init__(self, name: str, command: str):
        logger.log(f"popen: {command}")
        try:
            self.process = subprocess.Popen(command, shell=True,
                                            stdout=subprocess.PIPE,
                                            stderr=subprocess.DEVNULL)
        except OSError as e:
            raise SourceError(name, e.strerror)
        super().__init__(name, self.process.stdout.fileno(), owns_fd=False)

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        self.process.stdout.close()
        status = self.process.wait()
        logger.log(f"command for {self.name} exited: {status}")


def formatter_argv(command: str, name: str) -> list:
    """Split a formatter command line and put name in place of %s."""
    return [token.replace("%s", name) for token in shlex.split(command)]


class PtySource(FdSource):
    """
    Output of a child process that writes to a pseudo-terminal.

    Manual page formatters only produce overstrike formatting when they see
    a terminal, so the child gets the slave side sized like our window.
    """

    def __init__(self, name: str, argv: list, rows: int, cols: int):
        master, slave = os.openpty()
        try:
            termios.tcsetwinsize(slave, (rows, cols))
            # Keep newlines as they are written.
            attrs = termios.tcgetattr(slave)
            attrs[1] &= ~termios.OPOST
            termios.tcsetattr(slave, termios.TCSANOW, attrs)
        except termios.error as e:
            logger.log(f"could not set up formatter terminal: {e}")
        env = dict(os.environ)
        env["PAGER"] = "cat"
        env.pop("COLUMNS", None)
        logger.log(f"spawn: {argv} ({rows}x{cols})")
        try:
            self.process = subprocess.Popen(argv, stdin=slave, stdout=slave,
                                            stderr=slave, env=env,
                                            start_new_session=True)
        except OSError as e:
            os.close(master)
            raise SourceError(name, e.strerror)
        finally:
            os.close(slave)
        super().__init__(name, master, pty=True)

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        status = self.process.wait()
        logger.log(f"formatter for {self.name} exited: {status}")

    @property
    def returncode(self):
        return self.process.poll()


def preprocessor_command(environ):
    """
    Return the input preprocessor pipe command, if one is configured.
    KRILL_OPEN wins over LESSOPEN; only the "|command %s" form is used.
    """
    value = environ.get("KRILL_OPEN") or environ.get("LESSOPEN")
    if not value or not value.startswith("|"):
        return None
    return value[1:].strip() or None


def open_source(path: str, preprocessor: str = None) -> ByteSource:
    """
    Open path for paging.  With a preprocessor, its output is used when it
    produces any; otherwise the file itself is read.
    """
    if preprocessor:
        command = preprocessor.replace("%s", shlex.quote(path))
        source = CommandSource(path, command)
        if source.prefetch():
            return source
        source.close()
        logger.log(f"preprocessor gave no output for {path}")
    return FileSource(path)


def open_stdin() -> ByteSource:
    """Source over standard input; a dup is used so curses can reopen the tty."""
    fd = os.dup(0)
    st = os.fstat(fd)
    size = st.st_size if stat.S_ISREG(st.st_mode) else None
    return FdSource("", fd, size=size)
