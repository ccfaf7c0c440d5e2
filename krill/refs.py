"""
Reference cache: which name(section) references point at an existing page.

One ReferenceCache lives for the whole session and is shared by every
document.  Each distinct name is asked about at most once; the answer
comes from an oracle, either a command run per name or a listing of all
known pages read in one go.
"""
import enum
import re
import subprocess

from krill import logger

DEFAULT_VERIFY_COMMAND = 'man -w %s > /dev/null 2>&1'
DEFAULT_APROPOS_COMMAND = "apropos . | sort | sed 's/ (/(/'"

REFERENCE_PATTERN = rb"[A-Za-z0-9\b.:_+-]+\((n|[0-9])[^)]{0,8}\)"
REFERENCE_REGEX = re.compile(REFERENCE_PATTERN)


class Validity(enum.Enum):
    UNKNOWN = -1
    INVALID = 0
    VALID = 1


class Reference:
    __slots__ = ("name", "validity")

    def __init__(self, name: str):
        self.name = name
        self.validity = Validity.UNKNOWN

    def __repr__(self):
        return f"Reference({self.name!r}, {self.validity.name})"


class CommandOracle:
    """Runs a shell command per name; exit status 0 means the page exists."""

    def __init__(self, command: str = DEFAULT_VERIFY_COMMAND):
        self.command = command

    def check(self, name: str, cache) -> bool:
        quoted = "'" + name.replace("'", "'\\''") + "'"
        command = self.command.replace("%s", quoted)
        try:
            status = subprocess.call(command, shell=True,
                                     stdin=subprocess.DEVNULL,
                                     stdout=subprocess.DEVNULL,
                                     stderr=subprocess.DEVNULL)
        except OSError as e:
            logger.log(f"reference check for {name} failed: {e}")
            return False
        logger.log(f"reference {name} is {'valid' if status == 0 else 'invalid'}")
        return status == 0


class ListingOracle:
    """
    Loads a complete listing of valid names on first use.  Every listed
    name is marked valid; anything not listed is invalid.
    """

    def __init__(self, producer):
        self.producer = producer
        self.loaded = False

    def load(self, cache) -> None:
        count = 0
        for name in self.producer():
            cache.lookup_or_create(name).validity = Validity.VALID
            count += 1
        self.loaded = True
        logger.log(f"reference listing: {count} names")

    def check(self, name: str, cache) -> bool:
        if not self.loaded:
            self.load(cache)
        return cache.lookup_or_create(name).validity is Validity.VALID


def listing_names(lines):
    """Reference names from listing lines like "ls(1) - list directory contents"."""
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8", "replace")
        end = line.find(")")
        if end > 0:
            yield line[:end + 1]


def apropos_producer(command: str = DEFAULT_APROPOS_COMMAND):
    def produce():
        logger.log(f"popen: {command}")
        try:
            result = subprocess.run(command, shell=True, capture_output=True)
        except OSError as e:
            logger.log(f"apropos listing failed: {e}")
            return
        yield from listing_names(result.stdout.splitlines())
    return produce


class ReferenceCache:
    def __init__(self, oracle=None, case_sensitive: bool = False, verify: bool = True):
        self.oracle = oracle if oracle is not None else CommandOracle()
        self.case_sensitive = case_sensitive
        self.verify = verify
        self._table = {}

    def key(self, name: str) -> str:
        return name if self.case_sensitive else name.lower()

    def lookup_or_create(self, name: str) -> Reference:
        key = self.key(name)
        ref = self._table.get(key)
        if ref is None:
            ref = Reference(key)
            self._table[key] = ref
        return ref

    def validate(self, name: str) -> bool:
        """True if name refers to an existing page; asks the oracle once per name."""
        ref = self.lookup_or_create(name)
        if not self.verify:
            return True
        if ref.validity is Validity.UNKNOWN:
            valid = self.oracle.check(ref.name, self)
            ref.validity = Validity.VALID if valid else Validity.INVALID
        return ref.validity is Validity.VALID

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, name: str) -> bool:
        return self.key(name) in self._table
