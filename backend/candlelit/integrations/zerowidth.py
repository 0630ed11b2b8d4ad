"""Hide a short marker inside free text using zero-width characters.

Each character of the marker is written as its code point in binary, one
zero-width character per bit, with a joiner between characters. The result
renders exactly like the visible text.
"""

from __future__ import annotations

ZERO_BIT = "\u200b"
ONE_BIT = "\u200c"
SEPARATOR = "\u200d"
BOUNDARY = "\ufeff"

ZERO_WIDTH_CHARS = frozenset({ZERO_BIT, ONE_BIT, SEPARATOR, BOUNDARY})


def zero_encode(text: str, mark: str) -> str:
    if not mark:
        return text
    encoded_chars = [
        format(ord(char), "b").replace("0", ZERO_BIT).replace("1", ONE_BIT)
        for char in mark
    ]
    return f"{strip_zero_width(text)}{BOUNDARY}{SEPARATOR.join(encoded_chars)}{BOUNDARY}"


def zero_decode(text: str | None) -> str:
    if not text:
        return ""
    start = text.find(BOUNDARY)
    end = text.rfind(BOUNDARY)
    if start == -1 or end <= start:
        return ""

    decoded: list[str] = []
    for chunk in text[start + 1 : end].split(SEPARATOR):
        bits = "".join("1" if char == ONE_BIT else "0" for char in chunk if char in (ZERO_BIT, ONE_BIT))
        if not bits:
            continue
        decoded.append(chr(int(bits, 2)))
    return "".join(decoded)


def strip_zero_width(text: str | None) -> str:
    if not text:
        return ""
    return "".join(char for char in text if char not in ZERO_WIDTH_CHARS)
