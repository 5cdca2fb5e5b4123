"""
Immutable byte values used for row keys, column names and cell values.

A value is either an owned buffer (``OwnedBytes``) or a zero-copy window into
a longer shared buffer (``SharedWindow``), e.g. a row key living inside a
decoded request. Both variants compare and hash by their logical bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

BytesLike = Union[bytes, bytearray, memoryview]


class ByteWindow:
    """Common read API of both byte value variants."""

    __slots__ = ()

    def view(self) -> memoryview:
        """Read-only view of the logical bytes (no copy)."""
        raise NotImplementedError

    def materialize(self) -> bytes:
        """Copy of exactly the logical bytes."""
        return self.view().tobytes()

    def logical_length(self) -> int:
        raise NotImplementedError

    def equals_logical(self, other: object) -> bool:
        if isinstance(other, ByteWindow):
            if self.logical_length() != other.logical_length():
                return False
            return self.view() == other.view()
        if isinstance(other, (bytes, bytearray, memoryview)):
            return self.view() == memoryview(other).cast("B")
        return False

    def __len__(self) -> int:
        return self.logical_length()

    def __bytes__(self) -> bytes:
        return self.materialize()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ByteWindow):
            return NotImplemented
        return self.equals_logical(other)

    def __hash__(self) -> int:
        return hash(self.materialize())

    @staticmethod
    def of(value: Union["ByteWindow", BytesLike, str]) -> "ByteWindow":
        """Coerce bytes-like values (or UTF-8 text) into a byte value."""
        if isinstance(value, ByteWindow):
            return value
        if isinstance(value, str):
            return OwnedBytes(value.encode("utf-8"))
        if isinstance(value, (bytes, bytearray, memoryview)):
            return OwnedBytes(bytes(value))
        raise TypeError(f"Cannot build a byte value from {type(value).__name__}")


@dataclass(frozen=True, eq=False)
class OwnedBytes(ByteWindow):
    """The whole buffer is the value."""

    __slots__ = ("data",)

    data: bytes

    def view(self) -> memoryview:
        return memoryview(self.data)

    def materialize(self) -> bytes:
        return self.data

    def logical_length(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"OwnedBytes({self.data!r})"


@dataclass(frozen=True, eq=False)
class SharedWindow(ByteWindow):
    """``length`` bytes of ``backing`` starting at ``offset``."""

    __slots__ = ("backing", "offset", "length")

    backing: bytes
    offset: int
    length: int

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"Negative window offset: {self.offset}")
        if self.length < 0:
            raise ValueError(f"Negative window length: {self.length}")
        if self.offset + self.length > len(self.backing):
            raise ValueError(
                f"Window {self.offset}:{self.offset + self.length} exceeds "
                f"backing buffer of {len(self.backing)} bytes"
            )

    def view(self) -> memoryview:
        return memoryview(self.backing)[self.offset : self.offset + self.length]

    def logical_length(self) -> int:
        return self.length

    def __repr__(self) -> str:
        return (
            f"SharedWindow({self.materialize()!r}, "
            f"offset={self.offset}, length={self.length})"
        )


def window(
    backing: BytesLike, offset: int = 0, length: Optional[int] = None
) -> ByteWindow:
    """
    Build a byte value over ``backing``.

    With ``length=None`` the whole buffer is the value and ``offset`` is
    ignored. Otherwise the value is a zero-copy window of ``length`` bytes.
    """
    data = backing if isinstance(backing, bytes) else bytes(backing)
    if length is None:
        return OwnedBytes(data)
    return SharedWindow(data, offset, length)


__all__ = ["ByteWindow", "OwnedBytes", "SharedWindow", "window", "BytesLike"]
