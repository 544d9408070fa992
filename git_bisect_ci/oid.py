"""Git object identifiers."""

import string
from dataclasses import dataclass
from typing import Union

from .errors import BisectCIError

_HEX_DIGITS = frozenset(string.hexdigits)


class OidParseError(BisectCIError, ValueError):
    """Raised when a two-character chunk is not a hexadecimal octet."""

    def __init__(self, chunk: str):
        self.chunk = chunk
        super().__init__(f'"{chunk}" cannot be parsed as an octet')


@dataclass(frozen=True, order=True)
class Oid:
    """An object identifier, stored as raw bytes.

    Ordering is byte-lexicographic and only used to iterate deterministically.
    """
    raw: bytes

    @classmethod
    def parse(cls, text: Union[str, bytes]) -> "Oid":
        """Parse a hex string, two characters per byte.

        Raises:
            OidParseError: If a chunk is not a valid hex pair. For input of
                odd length the final one-character chunk is reported.
        """
        if isinstance(text, bytes):
            text = text.decode("ascii", errors="replace")

        octets = bytearray()
        for i in range(0, len(text), 2):
            pair = text[i:i + 2]
            # int(..., 16) would also accept whitespace and signs
            if len(pair) != 2 or not _HEX_DIGITS.issuperset(pair):
                raise OidParseError(pair)
            octets.append(int(pair, 16))
        return cls(bytes(octets))

    def __str__(self) -> str:
        return self.raw.hex()

    def __repr__(self) -> str:
        return f"Oid({self})"
