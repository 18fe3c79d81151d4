"""Bit-oriented writer for H.264 NAL unit payloads."""

from __future__ import annotations

from types import TracebackType
from typing import BinaryIO, Optional

BUFFER_SIZE_BITS = 24
BUFFER_SIZE_BYTES = BUFFER_SIZE_BITS // 8
EMULATION_PREVENTION_BYTE = 0x03

_UINT64_MASK = (1 << 64) - 1
_UINT32_MASK = (1 << 32) - 1


class BitstreamError(Exception):
    """Raised when the bitstream cannot be written as requested."""


class BitstreamWriter:
    """Writes bits, bytes and Exp-Golomb codes to a binary output.

    A three byte window is kept in memory so that start-code emulation
    prevention bytes can be inserted as the payload is flushed.
    """

    def __init__(self, out: Optional[BinaryIO]) -> None:
        self._out = out
        self._clear_buffer()

    def _clear_buffer(self) -> None:
        self._buffer = bytearray(BUFFER_SIZE_BYTES)
        self._bit_count = 0
        self._start = 0

    def _write(self, data: bytes) -> None:
        if self._out is None:
            raise BitstreamError("out file is missing")
        self._out.write(data)

    def _slot(self, offset: int) -> int:
        return (self._start + offset) % BUFFER_SIZE_BYTES

    def _add_bit(self, bit: int) -> None:
        if self._bit_count >= BUFFER_SIZE_BITS:
            self._save_buffer_byte()
        pos = self._slot(self._bit_count // 8)
        mask = 1 << (7 - self._bit_count % 8)
        if bit > 0:
            self._buffer[pos] |= mask
        else:
            self._buffer[pos] &= ~mask & 0xFF
        self._bit_count += 1

    def _add_aligned_byte(self, value: int) -> None:
        if self._bit_count >= BUFFER_SIZE_BITS:
            self._save_buffer_byte()
        if self._bit_count % 8 != 0:
            raise BitstreamError("inserting a byte that is not aligned")
        self._buffer[self._slot(self._bit_count // 8)] = value & 0xFF
        self._bit_count += 8

    def _save_buffer_byte(self, emulation_prevention: bool = True) -> None:
        if self._out is None:
            raise BitstreamError("out file is missing")
        if self._bit_count % 8 != 0:
            raise BitstreamError("save to file must be byte aligned")
        if self._bit_count // 8 <= 0:
            raise BitstreamError("no bytes to save")

        if emulation_prevention:
            window = [self._buffer[self._slot(i)] for i in range(BUFFER_SIZE_BYTES)]
            if window[0] == 0x00 and window[1] == 0x00 and window[2] <= 0x03:
                self._write(
                    bytes(window[:2])
                    + bytes([EMULATION_PREVENTION_BYTE])
                    + bytes(window[2:])
                )
                self._clear_buffer()
                return

        self._write(bytes([self._buffer[self._start]]))
        self._buffer[self._start] = 0
        self._start = (self._start + 1) % BUFFER_SIZE_BYTES
        self._bit_count -= 8

    def _flush(self) -> None:
        while self._bit_count != 0:
            self._save_buffer_byte()

    def add_start_code(self, value: int, align: bool = False) -> None:
        """Flush pending bytes, then write ``value`` as 4 raw big-endian bytes."""
        if align:
            self.byte_align()
        if self._bit_count % 8 != 0:
            raise BitstreamError("save to file must be byte aligned")
        self._flush()
        self._write((value & _UINT32_MASK).to_bytes(4, "big"))

    def add_bits(self, value: int, num_bits: int) -> None:
        """Append the lowest ``num_bits`` bits of ``value``, most significant first."""
        if not 1 <= num_bits <= 64:
            raise BitstreamError("num_bits must be between 1 and 64")
        value &= _UINT64_MASK
        for n in reversed(range(num_bits)):
            self._add_bit((value >> n) & 1)

    def add_exp_golomb_unsigned(self, value: int) -> None:
        """Append ``value`` coded as unsigned Exp-Golomb (ue(v))."""
        if value < 0:
            raise BitstreamError("unsigned Exp-Golomb value must not be negative")
        code = value + 1
        num_bits = code.bit_length()
        for _ in range(num_bits - 1):
            self.add_bits(0, 1)
        self.add_bits(code, num_bits)

    def add_exp_golomb_signed(self, value: int) -> None:
        """Append ``value`` coded as signed Exp-Golomb (se(v))."""
        mapped = 2 * value - 1 if value > 0 else -2 * value
        self.add_exp_golomb_unsigned(mapped)

    def byte_align(self) -> None:
        """Pad with zero bits up to the next byte boundary."""
        remainder = self._bit_count % 8
        if remainder:
            self._bit_count += 8 - remainder

    def add_byte(self, value: int) -> None:
        """Append 8 bits of ``value``."""
        value &= 0xFF
        if self._bit_count % 8 == 0:
            self._add_aligned_byte(value)
        else:
            self.add_bits(value, 8)

    def close(self) -> None:
        """Byte-align and write out everything still buffered."""
        self.byte_align()
        self._flush()

    def __enter__(self) -> "BitstreamWriter":
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()