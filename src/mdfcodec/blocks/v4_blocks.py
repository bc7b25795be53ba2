"""
classes that implement the blocks for MDF version 4
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
from struct import pack, unpack, unpack_from
from typing import Any, NamedTuple, TYPE_CHECKING

import numpy as np
from typing_extensions import Buffer

from . import v4_constants as v4c
from .utils import decode_text, FileLike, is_file_like, MdfException, MdfFormatError, MdfIOError, read_exact

if TYPE_CHECKING:
    from .comments import MdComment

COMMON_SIZE = v4c.COMMON_SIZE
COMMON_u = v4c.COMMON_u
COMMON_uf = v4c.COMMON_uf
COMMON_p = v4c.COMMON_p
LINK_SIZE = v4c.LINK_SIZE

logger = logging.getLogger("mdfcodec")

__all__ = [
    "BlockHeader",
    "DataBlock",
    "DataInformation",
    "ListData",
    "TextBlock",
    "read_block_header",
]


def _block_name(block_id: bytes) -> str:
    return block_id.decode("ascii", "replace")


class BlockHeader:
    """generic MDF4 block header and link table

    *BlockHeader* has the following attributes, that are also available as
    dict like key-value pairs

    * ``id`` - bytes : block ID; ``b'##'`` followed by the two character type
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size; covers header, links and payload
    * ``links_nr`` - int : number of links
    * ``links`` - list[int] : link table; 0 is a null link

    Other attributes

    * ``address`` - int : block address inside the file

    """

    __slots__ = ("address", "id", "reserved0", "block_len", "links_nr", "links")

    def __init__(
        self,
        id: bytes,
        block_len: int = 0,
        links: Sequence[int] = (),
        reserved0: int = 0,
        address: int = 0,
    ) -> None:
        self.id = id
        self.reserved0 = reserved0
        self.links = list(links)
        self.links_nr = len(self.links)
        self.block_len = block_len or self.size
        self.address = address

    @property
    def size(self) -> int:
        """number of bytes used by the fixed header and the link table"""
        return COMMON_SIZE + LINK_SIZE * self.links_nr

    @property
    def block_type(self) -> str:
        return _block_name(self.id[2:])

    @classmethod
    def read(cls, stream: FileLike) -> tuple[BlockHeader, int]:
        """read the header and link table from the current stream position

        Returns
        -------
        header, bytes_consumed : BlockHeader, int

        Raises
        ------
        MdfIOError
            if the stream ends before the header or the link table is complete
        MdfFormatError
            if the declared block length is smaller than the header size

        """
        address = stream.tell()
        block_id, reserved0, block_len, links_nr = COMMON_u(read_exact(stream, COMMON_SIZE, "????", "header", address))

        header = cls.__new__(cls)
        header.address = address
        header.id = block_id
        header.reserved0 = reserved0
        header.block_len = block_len
        header.links_nr = links_nr

        header._check_length()

        data = read_exact(stream, links_nr * LINK_SIZE, block_id, "links", address)
        header.links = list(unpack(f"<{links_nr}Q", data))

        return header, header.size

    @classmethod
    def from_buffer(cls, buffer: Buffer, offset: int = 0) -> BlockHeader:
        """decode the header and link table from an in-memory buffer
        (bytes or mmap)"""
        view = memoryview(buffer)
        if offset + COMMON_SIZE > len(view):
            message = f"truncated block header @{hex(offset)}"
            logger.error(message)
            raise MdfIOError(message, section="header")

        block_id, reserved0, block_len, links_nr = COMMON_uf(view, offset)

        header = cls.__new__(cls)
        header.address = offset
        header.id = bytes(block_id)
        header.reserved0 = reserved0
        header.block_len = block_len
        header.links_nr = links_nr

        header._check_length()

        if offset + header.size > len(view):
            message = f'truncated "{_block_name(block_id)}" block @{hex(offset)}: links section'
            logger.error(message)
            raise MdfIOError(message, block_type=_block_name(block_id), section="links")

        header.links = list(unpack_from(f"<{links_nr}Q", view, offset + COMMON_SIZE))
        return header

    def _check_length(self) -> None:
        if self.block_len < self.size:
            message = (
                f'"{_block_name(self.id)}" block @{hex(self.address)} declares {self.block_len} bytes '
                f"but its header and {self.links_nr} links need {self.size} bytes"
            )
            logger.exception(message)
            raise MdfFormatError(message)

    def check_id(self, *expected: bytes) -> None:
        if self.id not in expected:
            names = " or ".join(f'"{_block_name(block_id)}"' for block_id in expected)
            message = f'Expected {names} block @{hex(self.address)} but found "{self.id}"'
            logger.exception(message)
            raise MdfFormatError(message)

    def write(self, stream: FileLike) -> int:
        return stream.write(bytes(self))

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        if len(self.links) != self.links_nr:
            raise MdfFormatError(
                f'"{_block_name(self.id)}" block declares {self.links_nr} links but has {len(self.links)}'
            )
        if any(link < 0 for link in self.links):
            raise MdfFormatError(f'"{_block_name(self.id)}" block has unresolved links: {self.links}')

        return COMMON_p(self.id, self.reserved0, self.block_len, self.links_nr) + pack(
            f"<{self.links_nr}Q", *self.links
        )

    def __repr__(self) -> str:
        return (
            f"BlockHeader(id={self.id}, address={hex(self.address)}, "
            f"block_len={self.block_len}, links_nr={self.links_nr}, links={self.links})"
        )


def read_block_header(kwargs: dict[str, Any], *expected: bytes) -> tuple[BlockHeader, FileLike]:
    address = kwargs["address"]
    stream = kwargs["stream"]
    if not is_file_like(stream):
        raise MdfException(f"expected a file like object but got {type(stream).__name__}")

    stream.seek(address)
    header, _ = BlockHeader.read(stream)
    header.check_id(*expected)
    return header, stream


class DataBlock:
    """Common implementation for DTBLOCK/RDBLOCK/SDBLOCK/DVBLOCK

    *DataBlock* has the following attributes, that are also available as
    dict like key-value pairs

    DTBLOCK fields

    * ``id`` - bytes : block ID; b'##DT' for DTBLOCK, b'##RD' for RDBLOCK,
      b'##SD' for SDBLOCK or b'##DV' for DVBLOCK
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size
    * ``links_nr`` - int : number of links
    * ``data`` - bytes : raw samples

    Other attributes

    * ``address`` - int : data block address

    Parameters
    ----------
    address : int
        DTBLOCK/RDBLOCK/SDBLOCK/DVBLOCK address inside the file
    stream : int
        file handle
    type : str
        block type for new blocks; default "DT"
    data : bytes
        raw samples for new blocks

    """

    __slots__ = ("address", "id", "reserved0", "block_len", "links_nr", "data")

    def __init__(self, **kwargs) -> None:
        try:
            header, stream = read_block_header(kwargs, *v4c.DATA_BLOCK_IDS)
            self.address = header.address
            (self.id, self.reserved0, self.block_len, self.links_nr) = (
                header.id,
                header.reserved0,
                header.block_len,
                header.links_nr,
            )
            self.data = read_exact(stream, self.block_len - header.size, self.id, "data", self.address)

        except KeyError:
            self.address = 0
            type = kwargs.get("type", "DT")
            if type not in ("DT", "SD", "RD", "DV"):
                type = "DT"

            self.id = f"##{type}".encode("ascii")
            self.reserved0 = 0
            self.data = bytes(kwargs["data"])
            self.block_len = len(self.data) + COMMON_SIZE
            self.links_nr = 0

    def to_blocks(self, address: int, blocks: list[Any]) -> int:
        self.address = address
        blocks.append(self)
        return address + self.block_len

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        return COMMON_p(self.id, self.reserved0, self.block_len, self.links_nr) + self.data


class DataInformation:
    """DIBLOCK: locates the raw payload that follows its header without
    parsing it

    *DataInformation* has the following attributes, that are also available as
    dict like key-value pairs

    DIBLOCK fields

    * ``id`` - bytes : block ID; always b'##DI'
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size
    * ``links_nr`` - int : number of links
    * ``links`` - list[int] : link table

    Other attributes

    * ``address`` - int : block address
    * ``data_position`` - int : file position of the first payload byte
    * ``data`` - bytes | None : payload; only set for new blocks or after
      *read_data*

    Parameters
    ----------
    address : int
        DIBLOCK address inside the file
    stream : handle
        file handle
    data : bytes
        payload for new blocks

    """

    __slots__ = ("address", "id", "reserved0", "block_len", "links_nr", "links", "data_position", "data")

    def __init__(self, **kwargs) -> None:
        try:
            header, stream = read_block_header(kwargs, v4c.ID_DATA_INFORMATION)
            self.address = header.address
            self.id = header.id
            self.reserved0 = header.reserved0
            self.block_len = header.block_len
            self.links_nr = header.links_nr
            self.links = header.links
            self.data_position = stream.tell()
            self.data = None

        except KeyError:
            self.address = 0
            self.id = v4c.ID_DATA_INFORMATION
            self.reserved0 = 0
            self.links_nr = 0
            self.links = []
            self.data = bytes(kwargs.get("data", b""))
            self.block_len = COMMON_SIZE + len(self.data)
            self.data_position = 0

    @property
    def header_size(self) -> int:
        return COMMON_SIZE + LINK_SIZE * self.links_nr

    def size(self) -> int:
        """payload size in bytes; 0 for malformed blocks that are shorter
        than their header"""
        size = self.block_len - self.header_size
        if size < 0:
            logger.warning(
                f'"##DI" block @{hex(self.address)} declares {self.block_len} bytes '
                f"which is less than its {self.header_size} bytes header; treated as empty"
            )
            return 0
        return size

    def read_data(self, stream: FileLike) -> bytes:
        """read the located payload from *stream* and keep it in *data*"""
        stream.seek(self.data_position)
        self.data = read_exact(stream, self.size(), self.id, "data", self.address)
        return self.data

    def to_blocks(self, address: int, blocks: list[Any]) -> int:
        self.address = address
        self.data_position = address + self.header_size
        blocks.append(self)
        return address + self.block_len

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        if self.data is None:
            raise MdfException(f'payload of "##DI" block @{hex(self.address)} was not loaded; call read_data first')
        if len(self.data) != self.size():
            raise MdfFormatError(f'"##DI" block declares {self.size()} payload bytes but holds {len(self.data)}')
        header = BlockHeader(self.id, self.block_len, self.links, self.reserved0)
        return bytes(header) + self.data

    def __repr__(self) -> str:
        return f"DataInformation(address={hex(self.address)}, block_len={self.block_len}, size={self.size()})"


class _LDSection(NamedTuple):
    attribute: str
    label: str
    dtype: str
    present: Callable[[int], bool]
    scalar: bool = False


# payload sections of the LDBLOCK in their fixed file order
LD_SECTIONS = (
    _LDSection(
        "equal_sample_count",
        "equal sample count",
        "<u8",
        lambda flags: bool(flags & v4c.FLAG_LD_EQUAL_SAMPLE_COUNT),
        scalar=True,
    ),
    _LDSection("offsets", "offsets", "<u8", lambda flags: not flags & v4c.FLAG_LD_EQUAL_SAMPLE_COUNT),
    _LDSection("time_values", "time values", "<i8", lambda flags: bool(flags & v4c.FLAG_LD_TIME_VALUES)),
    _LDSection("angle_values", "angle values", "<i8", lambda flags: bool(flags & v4c.FLAG_LD_ANGLE_VALUES)),
    _LDSection("distance_values", "distance values", "<i8", lambda flags: bool(flags & v4c.FLAG_LD_DISTANCE_VALUES)),
)


class ListData:
    """
    *ListData* has the following attributes, that are also available as
    dict like key-value pairs

    LDBLOCK common fields

    * ``id`` - bytes : block ID; always b'##LD'
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size
    * ``links_nr`` - int : number of links
    * ``next_ld_addr`` - int : address of next LDBLOCK
    * ``data_block_addrs`` - list[int] : addresses of the data blocks
    * ``flags`` - int : list data flags (see *v4_constants.LDFlags*)
    * ``data_block_nr`` - int : number of data blocks referenced by this list

    LDBLOCK specific fields

    * if invalidation data present flag is set

        * ``invalidation_bits_addrs`` - list[int] : address of the invalidation
          block of each data block, same order as ``data_block_addrs``

    * for equal sample count blocks

        * ``equal_sample_count`` - int : number of samples in each data block;
          last block can be smaller

    * otherwise

        * ``offsets`` - NDArray[uint64] : byte offset of each data block

    * if time, angle or distance values flag is set

        * ``time_values``, ``angle_values``, ``distance_values`` -
          NDArray[int64] : first raw axis value of each data block

    Sections that are not present hold *None*.

    Other attributes

    * ``address`` - int : list data address

    """

    __slots__ = (
        "address",
        "id",
        "reserved0",
        "block_len",
        "links_nr",
        "next_ld_addr",
        "data_block_addrs",
        "invalidation_bits_addrs",
        "flags",
        "data_block_nr",
        "equal_sample_count",
        "offsets",
        "time_values",
        "angle_values",
        "distance_values",
    )

    def __init__(self, **kwargs) -> None:
        for section in LD_SECTIONS:
            self[section.attribute] = None

        try:
            header, stream = read_block_header(kwargs, v4c.ID_LIST_DATA)
            self.address = address = header.address
            self.id = header.id
            self.reserved0 = header.reserved0
            self.block_len = header.block_len
            self.links_nr = header.links_nr

            self.flags, self.data_block_nr = v4c.LD_INFO_u(
                read_exact(stream, v4c.LD_INFO_SIZE, self.id, "flags", address)
            )
            nr = self.data_block_nr

            expected_links = self._expected_links_nr()
            if self.links_nr != expected_links:
                message = (
                    f'"##LD" block @{hex(address)} with {nr} data blocks and flags {self.flags:#x} '
                    f"needs {expected_links} links but declares {self.links_nr}"
                )
                logger.exception(message)
                raise MdfFormatError(message)

            expected_len = self._expected_block_len()
            if self.block_len != expected_len:
                message = (
                    f'"##LD" block @{hex(address)} with {nr} data blocks and flags {self.flags:#x} '
                    f"needs {expected_len} bytes but declares {self.block_len}"
                )
                logger.exception(message)
                raise MdfFormatError(message)

            for section in LD_SECTIONS:
                if not section.present(self.flags):
                    continue
                count = 1 if section.scalar else nr
                data = read_exact(stream, 8 * count, self.id, section.label, address)
                values = np.frombuffer(data, dtype=section.dtype)
                if section.scalar:
                    self[section.attribute] = int(values[0])
                else:
                    self[section.attribute] = values.copy()

            links = header.links
            self.next_ld_addr = links[0]
            self.data_block_addrs = list(links[1 : nr + 1])
            if self.flags & v4c.FLAG_LD_INVALID_DATA:
                self.invalidation_bits_addrs = list(links[nr + 1 : 2 * nr + 1])
            else:
                self.invalidation_bits_addrs = None

        except KeyError:
            self.address = 0
            self.id = v4c.ID_LIST_DATA
            self.reserved0 = 0
            self.next_ld_addr = kwargs.get("next_ld_addr", 0)
            self.flags = int(kwargs.get("flags", 0))

            self.data_block_addrs = list(kwargs.get("data_block_addrs", ()))
            self.data_block_nr = len(self.data_block_addrs)

            if self.flags & v4c.FLAG_LD_INVALID_DATA:
                self.invalidation_bits_addrs = list(
                    kwargs.get("invalidation_bits_addrs", [0] * self.data_block_nr)
                )
            else:
                self.invalidation_bits_addrs = None

            for section in LD_SECTIONS:
                if section.present(self.flags):
                    value = kwargs.get(section.attribute)
                    if section.scalar:
                        self[section.attribute] = int(value or 0)
                    elif value is None:
                        self[section.attribute] = np.zeros(self.data_block_nr, dtype=section.dtype)
                    else:
                        self[section.attribute] = np.asarray(value, dtype=section.dtype)

            self.links_nr = self._expected_links_nr()
            self.block_len = self._expected_block_len()

    def _expected_links_nr(self) -> int:
        if self.flags & v4c.FLAG_LD_INVALID_DATA:
            return 1 + 2 * self.data_block_nr
        return 1 + self.data_block_nr

    def _expected_block_len(self) -> int:
        size = COMMON_SIZE + LINK_SIZE * self._expected_links_nr() + v4c.LD_INFO_SIZE
        for section in LD_SECTIONS:
            if section.present(self.flags):
                size += 8 if section.scalar else 8 * self.data_block_nr
        return size

    def validate(self) -> None:
        """check that every section holds exactly *data_block_nr* elements and
        that the links match the flags

        Raises
        ------
        MdfFormatError

        """
        nr = self.data_block_nr
        errors = []

        if len(self.data_block_addrs) != nr:
            errors.append(f"{len(self.data_block_addrs)} data block links")

        if self.flags & v4c.FLAG_LD_INVALID_DATA:
            if self.invalidation_bits_addrs is None or len(self.invalidation_bits_addrs) != nr:
                count = 0 if self.invalidation_bits_addrs is None else len(self.invalidation_bits_addrs)
                errors.append(f"{count} invalidation block links")
        elif self.invalidation_bits_addrs:
            errors.append("invalidation block links without the invalid data flag")

        for section in LD_SECTIONS:
            value = self[section.attribute]
            if not section.present(self.flags):
                if value is not None and not section.scalar and len(value):
                    errors.append(f"{section.label} without the matching flag")
                continue
            if section.scalar:
                if value is None:
                    errors.append(f"missing {section.label}")
            elif value is None or len(value) != nr:
                errors.append(f"{0 if value is None else len(value)} {section.label}")

        if errors:
            message = f'"##LD" block with {nr} data blocks is inconsistent: ' + ", ".join(errors)
            logger.error(message)
            raise MdfFormatError(message)

    @property
    def links(self) -> list[int]:
        links = [self.next_ld_addr, *self.data_block_addrs]
        if self.flags & v4c.FLAG_LD_INVALID_DATA:
            links.extend(self.invalidation_bits_addrs or ())
        return links

    def to_blocks(self, address: int, blocks: list[Any]) -> int:
        self.address = address
        blocks.append(self)
        return address + self.block_len

    def write(self, stream: FileLike) -> int:
        return stream.write(bytes(self))

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        self.validate()

        self.links_nr = self._expected_links_nr()
        self.block_len = self._expected_block_len()

        header = BlockHeader(self.id, self.block_len, self.links, self.reserved0)
        result = [bytes(header), v4c.LD_INFO_p(self.flags, self.data_block_nr)]

        for section in LD_SECTIONS:
            if not section.present(self.flags):
                continue
            value = self[section.attribute]
            if section.scalar:
                result.append(np.array([value], dtype=section.dtype).tobytes())
            else:
                result.append(np.asarray(value, dtype=section.dtype).tobytes())

        return b"".join(result)

    def __repr__(self) -> str:
        return (
            f"ListData(address={hex(self.address)}, flags={v4c.LDFlags(self.flags)!r}, "
            f"data_block_nr={self.data_block_nr}, next_ld_addr={hex(self.next_ld_addr)})"
        )


class TextBlock:
    """common TXBLOCK and MDBLOCK class

    *TextBlock* has the following attributes, that are also available as
    dict like key-value pairs

    TXBLOCK fields

    * ``id`` - bytes : block ID; b'##TX' for TXBLOCK and b'##MD' for MDBLOCK
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size
    * ``links_nr`` - int : number of links
    * ``text`` - bytes : actual text content, zero padded

    Other attributes

    * ``address`` - int : text block address

    Parameters
    ----------
    address : int
        block address
    stream : handle
        file handle
    meta : bool
        flag to set the block type to MDBLOCK for dynamically created objects; default *False*
    text : bytes/str
        text content for dynamically created objects

    """

    __slots__ = ("address", "id", "reserved0", "block_len", "links_nr", "text")

    def __init__(self, **kwargs) -> None:
        try:
            header, stream = read_block_header(kwargs, *v4c.TEXT_BLOCK_IDS)
            self.address = header.address
            self.id = header.id
            self.reserved0 = header.reserved0
            self.block_len = header.block_len
            self.links_nr = header.links_nr
            self.text = read_exact(stream, self.block_len - header.size, self.id, "text", self.address)

        except KeyError:
            text = kwargs["text"]

            try:
                text = text.encode("utf-8", "replace")
            except AttributeError:
                pass

            size = len(text)

            self.address = 0
            self.id = v4c.ID_METADATA if kwargs.get("meta", False) else v4c.ID_TEXT
            self.reserved0 = 0
            self.links_nr = 0

            # at least one terminating zero and 8 byte alignment
            padding = 8 - size % 8
            self.text = text + bytes(padding)
            self.block_len = COMMON_SIZE + size + padding

    @property
    def decoded(self) -> str:
        return decode_text(self.text)

    @property
    def is_meta(self) -> bool:
        return self.id == v4c.ID_METADATA

    def comment(self) -> MdComment | str:
        """the parsed comment document for MDBLOCKs, the plain text for TXBLOCKs"""
        if not self.is_meta:
            return self.decoded

        from .comments import comment_from_xml

        return comment_from_xml(self.decoded)

    def to_blocks(self, address: int, blocks: list[Any]) -> int:
        self.address = address
        blocks.append(self)
        return address + self.block_len

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        return pack(
            f"<4sI2Q{self.block_len - COMMON_SIZE}s",
            self.id,
            self.reserved0,
            self.block_len,
            self.links_nr,
            self.text,
        )

    def __repr__(self) -> str:
        return (
            f"TextBlock(id={self.id}, "
            f"reserved0={self.reserved0}, "
            f"block_len={self.block_len}, "
            f"links_nr={self.links_nr} "
            f"text={self.text})"
        )
