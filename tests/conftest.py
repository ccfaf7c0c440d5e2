import pytest

from krill.document import Document, View
from krill.refs import ReferenceCache
from krill.search import SearchEngine
from krill.source import MemorySource


class CountingOracle:
    """Reference oracle that accepts a fixed set of names and counts queries."""

    def __init__(self, valid=()):
        self.valid = set(valid)
        self.calls = []

    def check(self, name, cache):
        self.calls.append(name)
        return name in self.valid


def make_doc(data: bytes, blksize: int = 8, name: str = "test.txt") -> Document:
    """A document over in-memory data, with small blocks to cross block boundaries."""
    return Document(name, MemorySource(name, data, blksize=blksize))


@pytest.fixture
def numbered_doc():
    """Twenty lines "line00\\n" .. "line19\\n", seven bytes each."""
    data = b"".join(b"line%02d\n" % i for i in range(20))
    return make_doc(data)


@pytest.fixture
def view():
    return View(rows=5, cols=80)


@pytest.fixture
def oracle():
    return CountingOracle({"ls(1)", "cat(1)"})


@pytest.fixture
def engine(oracle):
    return SearchEngine(ReferenceCache(oracle))
