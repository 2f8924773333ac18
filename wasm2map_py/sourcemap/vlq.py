"""
Variable-length quantity encodings.

Two unrelated encodings share the name:

- the signed base64 VLQ of the source map ``mappings`` field: the sign is
  stored in the lowest bit, every base64 digit carries 5 bits of payload
  and bit 5 flags a continuation, least significant group first;
- the unsigned 7-bit varint (LEB128) the WebAssembly container uses for
  section and string lengths.
"""

from typing import List, Tuple

VLQ_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
VLQ_VALUES = {c: i for i, c in enumerate(VLQ_CHARS)}

VLQ_BASE_SHIFT = 5
VLQ_BASE_MASK = (1 << VLQ_BASE_SHIFT) - 1
VLQ_CONTINUATION = 1 << VLQ_BASE_SHIFT


def encode(value: int) -> str:
    """Encode a signed integer as a base64 VLQ."""
    x = (value << 1) if value >= 0 else ((-value) << 1) + 1

    result = []
    while x > VLQ_BASE_MASK:
        result.append(VLQ_CHARS[VLQ_CONTINUATION | (x & VLQ_BASE_MASK)])
        x >>= VLQ_BASE_SHIFT
    result.append(VLQ_CHARS[x])

    return ''.join(result)


def decode_one(text: str, pos: int = 0) -> Tuple[int, int]:
    """
    Decode one base64 VLQ.

    Args:
        text: Encoded text
        pos: Index of the first digit

    Returns:
        Tuple of (value, index after the last digit)

    Raises:
        ValueError: On a character outside the alphabet or a truncated value
    """
    x = 0
    shift = 0
    while True:
        if pos >= len(text):
            raise ValueError("Truncated VLQ value")
        digit = VLQ_VALUES.get(text[pos])
        if digit is None:
            raise ValueError(f"Invalid VLQ character {text[pos]!r}")
        pos += 1
        x |= (digit & VLQ_BASE_MASK) << shift
        shift += VLQ_BASE_SHIFT
        if not digit & VLQ_CONTINUATION:
            break

    value = x >> 1
    return (-value if x & 1 else value), pos


def decode(text: str) -> List[int]:
    """Decode a run of concatenated base64 VLQs, e.g. one mapping segment."""
    values = []
    pos = 0
    while pos < len(text):
        value, pos = decode_one(text, pos)
        values.append(value)
    return values


def encode_uint_var(n: int) -> bytes:
    """Encode an unsigned integer as a container varint."""
    if n < 0:
        raise ValueError("Cannot encode a negative value as an unsigned varint")
    result = bytearray()
    while n > 127:
        result.append(128 | (n & 127))
        n >>= 7
    result.append(n)
    return bytes(result)


def decode_uint_var(data: bytes, pos: int = 0) -> Tuple[int, int]:
    """
    Decode a container varint.

    Returns:
        Tuple of (value, index after the last byte)
    """
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise ValueError("Truncated varint")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if (b & 0x80) == 0:
            return result, pos
        shift += 7
