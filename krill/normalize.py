"""
Normalization of raw line bytes.

Raw text may carry ANSI SGR sequences (ESC [ params m) and legacy
overstrike pairs (c BS c for bold, _ BS c for underline).  The normalized
text is the payload alone and is what searching works on; rendering works
on the raw bytes.  Both directions (normalize and normalize_count) skip
control sequences through skip_controls, so offsets in the two spaces
always correspond.
"""
import codecs
import locale

ESC = 0x1b
BS = 0x08
NL = 0x0a

ENCODING = "utf-8"


def set_encoding(name: str = None) -> None:
    """Use the encoding of the current locale (or name) to decode characters."""
    global ENCODING
    if name is None:
        name = locale.getpreferredencoding(False) or "utf-8"
    try:
        ENCODING = codecs.lookup(name).name
    except LookupError:
        ENCODING = "utf-8"


def _utf8_length(lead: int) -> int:
    if lead < 0x80:
        return 1
    if 0xc2 <= lead <= 0xdf:
        return 2
    if 0xe0 <= lead <= 0xef:
        return 3
    if 0xf0 <= lead <= 0xf4:
        return 4
    return 0


def decode_char(data, i: int, end: int = None):
    """
    Decode the character starting at data[i].

    Returns (char, length_in_bytes).  Bytes that do not start a valid
    sequence decode as U+FFFD of length one, so the caller always makes
    progress.
    """
    if end is None:
        end = len(data)
    lead = data[i]
    if lead < 0x80:
        return chr(lead), 1
    if ENCODING != "utf-8":
        return bytes(data[i:i + 1]).decode(ENCODING, "replace"), 1
    n = _utf8_length(lead)
    if n and i + n <= end:
        try:
            return bytes(data[i:i + n]).decode("utf-8"), n
        except UnicodeDecodeError:
            pass
    return "�", 1


def char_length(data, i: int, end: int = None) -> int:
    return decode_char(data, i, end)[1]


def sgr_length(data, i: int, end: int = None) -> int:
    """
    Length of the SGR sequence starting at data[i], or 0 if there is none.

    Only ESC [ followed by digits and semicolons and terminated by m counts.
    Anything else that starts with ESC stays in the text as payload.
    """
    if end is None:
        end = len(data)
    if data[i] != ESC or i + 1 >= end or data[i + 1] != 0x5b:
        return 0
    j = i + 2
    while j < end:
        c = data[j]
        if c == 0x6d:
            return j + 1 - i
        if not (0x30 <= c <= 0x39 or c == 0x3b):
            return 0
        j += 1
    return 0


def is_overstrike(data, i: int, end: int = None) -> bool:
    """True if the character at i is the first half (c BS) of an overstrike pair."""
    if end is None:
        end = len(data)
    n = char_length(data, i, end)
    return i + n < end and data[i + n] == BS


def skip_controls(data, i: int, end: int = None) -> int:
    """
    Return the index of the next payload character at or after i.

    Skips SGR sequences and the first half (c BS) of overstrike pairs.
    """
    if end is None:
        end = len(data)
    while i < end:
        n = sgr_length(data, i, end)
        if n:
            i += n
            continue
        if is_overstrike(data, i, end):
            i += char_length(data, i, end) + 1
            continue
        break
    return i


def normalize(raw, length: int = None) -> bytes:
    """Return the payload of raw[:length] with control sequences removed."""
    end = len(raw) if length is None else min(length, len(raw))
    out = bytearray()
    i = 0
    while True:
        i = skip_controls(raw, i, end)
        if i >= end:
            break
        n = char_length(raw, i, end)
        out += raw[i:i + n]
        i += n
    return bytes(out)


def normalize_count(raw, count: int, length: int = None) -> int:
    """
    Return the number of raw bytes consumed to produce count bytes of
    normalized text; the inverse of normalize() used to map match offsets
    back onto raw offsets.
    """
    end = len(raw) if length is None else min(length, len(raw))
    i = 0
    n = 0
    while n < count and i < end:
        i = skip_controls(raw, i, end)
        if i >= end:
            break
        take = min(char_length(raw, i, end), count - n)
        i += take
        n += take
    return i
