"""
address indexed access to the blocks of a MDF version 4 file
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from io import BytesIO
import logging
from threading import RLock
from typing import Any

from typing_extensions import Buffer

from . import v4_constants as v4c
from .conversion import ChannelConversion
from .utils import FileLike, is_file_like, MdfFormatError, read_exact
from .v4_blocks import DataBlock, DataInformation, ListData, TextBlock

logger = logging.getLogger("mdfcodec")

__all__ = ["BLOCK_TYPES", "BlockTable", "write_blocks"]

BLOCK_TYPES: dict[bytes, type] = {
    v4c.ID_LIST_DATA: ListData,
    v4c.ID_DATA_INFORMATION: DataInformation,
    v4c.ID_DATA: DataBlock,
    v4c.ID_DATA_VALUES: DataBlock,
    v4c.ID_REDUCTION_DATA: DataBlock,
    v4c.ID_SIGNAL_DATA: DataBlock,
    v4c.ID_TEXT: TextBlock,
    v4c.ID_METADATA: TextBlock,
    v4c.ID_CONVERSION: ChannelConversion,
}


def _links(block: Any) -> list[int]:
    return list(getattr(block, "links", ()))


class BlockTable:
    """decoded blocks of a file, indexed by their address

    Blocks are decoded lazily the first time their address is requested and
    then cached; links stay plain addresses that are resolved through the
    table.

    Parameters
    ----------
    stream : file handle | bytes | mmap.mmap
        file content

    """

    def __init__(self, stream: FileLike | Buffer) -> None:
        if not is_file_like(stream):
            stream = BytesIO(memoryview(stream))
        self.stream = stream
        self.blocks: dict[int, Any] = {}
        self._lock = RLock()

    def __contains__(self, address: int) -> bool:
        return address in self.blocks

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.blocks.values())

    def get(self, address: int) -> Any:
        """return the block at *address*; *None* for the null link

        Raises
        ------
        MdfFormatError
            if the block type is not handled by the codec

        """
        if not address:
            return None

        with self._lock:
            try:
                return self.blocks[address]
            except KeyError:
                pass

            stream = self.stream
            stream.seek(address)
            block_id = read_exact(stream, 4, "????", "header", address)
            try:
                cls = BLOCK_TYPES[block_id]
            except KeyError:
                message = f'unsupported block type "{block_id}" @{hex(address)}'
                logger.exception(message)
                raise MdfFormatError(message) from None

            if cls is ChannelConversion:
                # conversions resolve their own text and inverse links
                block = cls(address=address, stream=stream, table=self)
            else:
                block = cls(address=address, stream=stream)

            self.blocks[address] = block
            return block

    def resolve(self, block: Any) -> list[Any]:
        """blocks referenced by the links of *block*; null links map to *None*"""
        return [self.get(address) for address in _links(block)]

    def iter_list_data(self, address: int) -> Iterator[ListData]:
        """follow the ``next_ld_addr`` chain that starts at *address*"""
        seen = set()
        while address:
            if address in seen:
                message = f'"##LD" chain loops back to @{hex(address)}'
                logger.exception(message)
                raise MdfFormatError(message)
            seen.add(address)

            ld = self.get(address)
            if not isinstance(ld, ListData):
                message = f'Expected "##LD" block @{hex(address)} but found "{ld.id}"'
                logger.exception(message)
                raise MdfFormatError(message)

            yield ld
            address = ld.next_ld_addr

    def data_blocks(self, ld: ListData) -> list[Any]:
        return [self.get(address) for address in ld.data_block_addrs]

    def invalidation_blocks(self, ld: ListData) -> list[DataInformation | None]:
        """invalidation block of each data block; all *None* when the list has
        no invalidation data"""
        if not ld.flags & v4c.FLAG_LD_INVALID_DATA:
            return [None] * ld.data_block_nr
        return [self.get(address) for address in ld.invalidation_bits_addrs or ()]

    def block_pairs(self, address: int) -> Iterator[tuple[Any, DataInformation | None]]:
        """(data block, invalidation block) pairs of a whole LD chain"""
        for ld in self.iter_list_data(address):
            yield from zip(self.data_blocks(ld), self.invalidation_blocks(ld))

    def read_payload(self, block: Any) -> bytes:
        if isinstance(block, DataInformation):
            with self._lock:
                return block.read_data(self.stream)
        return block.data


def write_blocks(blocks: Iterable[Any], stream: FileLike) -> int:
    """write blocks that were laid out with their *to_blocks* methods

    Every block is written at its address; a link must point to a block that
    is already written.

    Returns
    -------
    end : int
        address after the last written block

    """
    written: set[int] = set()
    end = 0
    for block in blocks:
        for link in _links(block):
            if link and link not in written:
                message = f'"{block.id}" block @{hex(block.address)} links to {hex(link)} which is not written yet'
                logger.exception(message)
                raise MdfFormatError(message)

        stream.seek(block.address)
        stream.write(bytes(block))
        written.add(block.address)
        end = max(end, block.address + block.block_len)

    return end
