from __future__ import annotations

import struct

from .errors import UnexpectedEndOfData

LITTLE = "<"
BIG = ">"


class Reader:
    """Forward cursor over a byte buffer.

    Every read advances by the exact width of the field. ``endian`` is a
    struct byte-order prefix and applies to every multi-byte read.
    """

    def __init__(self, data: bytes, base: int = 0, endian: str = LITTLE):
        if endian not in (LITTLE, BIG):
            raise ValueError(f"bad endian: {endian!r}")
        self.data = data
        self.ofs = base
        self.endian = endian

    def __len__(self) -> int:
        return len(self.data)

    def tell(self) -> int:
        return self.ofs

    @property
    def remaining(self) -> int:
        return len(self.data) - self.ofs

    def seek(self, ofs: int) -> None:
        if not (0 <= ofs <= len(self.data)):
            raise UnexpectedEndOfData(f"seek out of range: {ofs:#x} (size {len(self.data):#x})")
        self.ofs = ofs

    def skip(self, n: int) -> None:
        self.seek(self.ofs + n)

    def _need(self, n: int) -> None:
        if n < 0 or self.ofs + n > len(self.data):
            raise UnexpectedEndOfData(
                f"unexpected EOF at {self.ofs:#x}: need {n} byte(s), size {len(self.data):#x}"
            )

    def _unpack(self, fmt: str, size: int):
        self._need(size)
        v = struct.unpack_from(self.endian + fmt, self.data, self.ofs)[0]
        self.ofs += size
        return v

    def u8(self) -> int:
        self._need(1)
        v = self.data[self.ofs]
        self.ofs += 1
        return v

    def u16(self) -> int:
        return self._unpack("H", 2)

    def s16(self) -> int:
        return self._unpack("h", 2)

    def u32(self) -> int:
        return self._unpack("I", 4)

    def s32(self) -> int:
        return self._unpack("i", 4)

    def f32(self) -> float:
        return self._unpack("f", 4)

    def array(self, fmt: str, count: int) -> tuple:
        """Read ``count`` consecutive values of one struct code."""
        size = struct.calcsize(self.endian + fmt) * count
        self._need(size)
        v = struct.unpack_from(f"{self.endian}{count}{fmt}", self.data, self.ofs)
        self.ofs += size
        return v

    def bytes(self, n: int) -> bytes:
        self._need(n)
        b = self.data[self.ofs : self.ofs + n]
        self.ofs += n
        return bytes(b)

    def fixed_str(self, n: int, *, trim_nulls: bool = True, encoding: str = "cp1252") -> str:
        b = self.bytes(n)
        if trim_nulls:
            b = b.rstrip(b"\x00")
        return b.decode(encoding, "replace")

    def cstr(self, encoding: str = "utf-8") -> str:
        end = self.data.find(b"\x00", self.ofs)
        if end < 0:
            raise UnexpectedEndOfData(f"unterminated cstr at {self.ofs:#x}")
        s = bytes(self.data[self.ofs : end]).decode(encoding, "replace")
        self.ofs = end + 1
        return s
