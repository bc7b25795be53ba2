"""
fixed width values stored in an explicit byte order

MDF4 blocks are always little endian but the sample records referenced by
the data blocks can hold big endian (Motorola) values; the classes here
encode and decode both orders independent of the host byte order.
"""

from __future__ import annotations

from enum import Enum
import logging
from struct import error as StructError
from struct import Struct

from typing_extensions import Buffer

from .utils import MdfRangeError

logger = logging.getLogger("mdfcodec")

__all__ = [
    "BigEndianValue",
    "ByteOrder",
    "EndianValue",
    "LittleEndianValue",
    "decode",
    "encode",
]


class ByteOrder(Enum):
    LITTLE = "<"
    BIG = ">"


# numpy style type code -> struct format character
_KINDS = {
    "u1": "B",
    "u2": "H",
    "u4": "I",
    "u8": "Q",
    "i1": "b",
    "i2": "h",
    "i4": "i",
    "i8": "q",
    "f4": "f",
    "f8": "d",
}

_STRUCTS = {(kind, order): Struct(f"{order.value}{code}") for kind, code in _KINDS.items() for order in ByteOrder}


def _get_struct(kind: str, byte_order: ByteOrder | str) -> Struct:
    byte_order = ByteOrder(byte_order)
    try:
        return _STRUCTS[(kind, byte_order)]
    except KeyError:
        raise ValueError(f'unsupported value kind "{kind}"; expected one of {", ".join(_KINDS)}') from None


class EndianValue:
    """fixed width numeric value and its byte exact representation

    Parameters
    ----------
    value : int | float
        value to encode
    kind : str
        numpy style type code: ``u1``, ``u2``, ``u4``, ``u8``, ``i1``, ``i2``,
        ``i4``, ``i8``, ``f4`` or ``f8``
    byte_order : ByteOrder | str
        ``ByteOrder.LITTLE`` (``"<"``) or ``ByteOrder.BIG`` (``">"``)

    Examples
    --------
    >>> bytes(EndianValue(66, "u4", ByteOrder.BIG))
    b'\\x00\\x00\\x00B'
    >>> EndianValue.from_buffer(b"\\0\\0\\0\\0B\\0\\0\\0", 4, "u4", "<").value
    66

    """

    __slots__ = ("kind", "byte_order", "_struct", "_raw")

    def __init__(self, value: int | float = 0, kind: str = "u4", byte_order: ByteOrder | str = ByteOrder.LITTLE) -> None:
        self.kind = kind
        self.byte_order = ByteOrder(byte_order)
        self._struct = _get_struct(kind, self.byte_order)
        try:
            self._raw = self._struct.pack(value)
        except (StructError, OverflowError) as err:
            raise MdfRangeError(f'value {value!r} does not fit in "{kind}": {err}') from None

    @classmethod
    def from_buffer(
        cls,
        buffer: Buffer,
        offset: int = 0,
        kind: str = "u4",
        byte_order: ByteOrder | str = ByteOrder.LITTLE,
    ) -> EndianValue:
        """decode the value stored at *offset* inside an externally owned
        buffer; exactly ``width`` bytes are copied

        Raises
        ------
        MdfRangeError
            if ``offset + width`` exceeds the buffer size

        """
        instance = cls.__new__(cls)
        instance.kind = kind
        instance.byte_order = ByteOrder(byte_order)
        instance._struct = _get_struct(kind, instance.byte_order)

        width = instance._struct.size
        with memoryview(buffer) as view, view.cast("B") as raw:
            if offset < 0 or offset + width > len(raw):
                message = f'cannot decode "{kind}" at offset {offset}: {width} bytes needed but buffer size is {len(raw)}'
                logger.debug(message)
                raise MdfRangeError(message)

            instance._raw = bytes(raw[offset : offset + width])
        return instance

    @property
    def width(self) -> int:
        return self._struct.size

    @property
    def value(self) -> int | float:
        return self._struct.unpack(self._raw)[0]

    @value.setter
    def value(self, value: int | float) -> None:
        try:
            self._raw = self._struct.pack(value)
        except (StructError, OverflowError) as err:
            raise MdfRangeError(f'value {value!r} does not fit in "{self.kind}": {err}') from None

    def __bytes__(self) -> bytes:
        return self._raw

    def __len__(self) -> int:
        return len(self._raw)

    def __getitem__(self, item: int) -> int:
        return self._raw[item]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EndianValue):
            return NotImplemented
        return self.kind == other.kind and self.byte_order is other.byte_order and self._raw == other._raw

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value={self.value!r}, kind={self.kind!r}, byte_order={self.byte_order.name})"


class LittleEndianValue(EndianValue):
    """least significant byte first"""

    __slots__ = ()

    def __init__(self, value: int | float = 0, kind: str = "u4") -> None:
        super().__init__(value, kind, ByteOrder.LITTLE)

    @classmethod
    def from_buffer(cls, buffer: Buffer, offset: int = 0, kind: str = "u4", byte_order=ByteOrder.LITTLE):
        return super().from_buffer(buffer, offset, kind, ByteOrder.LITTLE)


class BigEndianValue(EndianValue):
    """most significant byte first"""

    __slots__ = ()

    def __init__(self, value: int | float = 0, kind: str = "u4") -> None:
        super().__init__(value, kind, ByteOrder.BIG)

    @classmethod
    def from_buffer(cls, buffer: Buffer, offset: int = 0, kind: str = "u4", byte_order=ByteOrder.BIG):
        return super().from_buffer(buffer, offset, kind, ByteOrder.BIG)


def encode(value: int | float, kind: str, byte_order: ByteOrder | str = ByteOrder.LITTLE) -> bytes:
    return bytes(EndianValue(value, kind, byte_order))


def decode(buffer: Buffer, offset: int, kind: str, byte_order: ByteOrder | str = ByteOrder.LITTLE) -> int | float:
    return EndianValue.from_buffer(buffer, offset, kind, byte_order).value
