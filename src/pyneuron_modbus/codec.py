"""Bit-level conversion between 16-bit register words and ordered booleans."""

from .types import CounterComposition

WORD_BITS = 16
_WORD_MAX = 0xFFFF


def _check_word(word: int) -> int:
    word = int(word)
    if not (0 <= word <= _WORD_MAX):
        raise ValueError(f"Register value out of 16-bit range: {word}")
    return word


def decode_word(word: int) -> list[bool]:
    """Split a register into 16 booleans; element 0 is the least-significant bit (IO index 1)."""
    word = _check_word(word)
    return [bool((word >> i) & 1) for i in range(WORD_BITS)]


def decode_bits(word: int, length: int = WORD_BITS) -> list[bool]:
    """The first `length` bits of a register, LSB first."""
    if not (0 <= length <= WORD_BITS):
        raise ValueError(f"length must be 0..{WORD_BITS}, got {length}")
    return decode_word(word)[:length]


def encode_bits(bits: "list[bool] | tuple[bool, ...]") -> int:
    """Inverse of decode_word: pack up to 16 booleans (LSB first) into a register value."""
    if len(bits) > WORD_BITS:
        raise ValueError(f"At most {WORD_BITS} bits fit in a register, got {len(bits)}")
    word = 0
    for i, bit in enumerate(bits):
        if bit:
            word |= 1 << i
    return word


def split_capability(word: int) -> tuple[int, int]:
    """Capability register: high byte is the DI count, low byte the DO count."""
    word = _check_word(word)
    return (word >> 8) & 0xFF, word & 0xFF


def split_extension(word: int) -> tuple[int, int, int]:
    """Extension register: bits 12-15 serial ports, 8-11 analog inputs, 0-7 analog outputs."""
    word = _check_word(word)
    return (word >> 12) & 0x0F, (word >> 8) & 0x0F, word & 0xFF


def combine_counter(
    first: int,
    second: int,
    composition: CounterComposition = CounterComposition.LOW_HIGH,
) -> int:
    """Combine the two registers of a DI pulse counter into one non-negative value."""
    first = _check_word(first)
    second = _check_word(second)
    if composition == CounterComposition.LOW_HIGH:
        return (second << WORD_BITS) | first
    if composition == CounterComposition.HIGH_LOW:
        return (first << WORD_BITS) | second
    return first + second
