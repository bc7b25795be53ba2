"""mdfcodec utility functions and classes"""

from collections.abc import Iterator
import logging
import mmap
import re

from chardet import detect
from typing_extensions import Buffer, Protocol, runtime_checkable, TypeIs

from .options import get_global_option

_xmlns_pattern = re.compile(r""" xmlns=['"][^'"]*['"]""")

logger = logging.getLogger("mdfcodec")

READ_CHUNK_SIZE = 16 * 1024 * 1024

__all__ = [
    "MdfException",
    "MdfFormatError",
    "MdfIOError",
    "MdfRangeError",
    "MdfSchemaError",
    "decode_text",
    "is_file_like",
    "read_exact",
    "sanitize_xml",
]


class MdfException(Exception):
    """MDF Exception class."""

    def __repr__(self) -> str:
        return f"mdfcodec MdfException: {self.args[0]}"


class MdfIOError(MdfException, OSError):
    """The stream ended (or failed) before a declared block section was complete."""

    def __init__(self, message: str, block_type: bytes | str = "", section: str = "") -> None:
        super().__init__(message)
        self.block_type = block_type
        self.section = section


class MdfFormatError(MdfException):
    """The block layout is inconsistent with its declared length, links or flags."""


class MdfSchemaError(MdfException, ValueError):
    """An embedded XML document could not be parsed or has an unexpected root."""


class MdfRangeError(MdfException, IndexError):
    """A fixed-width value was requested outside of the supplied buffer."""


@runtime_checkable
class FileLike(Protocol):
    def __iter__(self) -> Iterator[bytes]: ...
    def read(self, size: int | None = -1, /) -> bytes: ...
    def seek(self, target: int, whence: int = 0, /) -> int: ...
    def tell(self) -> int: ...
    def write(self, buffer: Buffer, /) -> int: ...


def is_file_like(obj: object) -> TypeIs[FileLike]:
    """Check if the object is a file-like object.

    For objects to be considered file-like, they must
    be an iterator AND have a 'read' and 'seek' method
    as an attribute.

    Parameters
    ----------
    obj : object
        The object to check.

    Returns
    -------
    is_file_like : bool
        Whether `obj` has file-like properties.

    Examples
    --------
    >>> buffer = BytesIO(b"data")
    >>> is_file_like(buffer)
    True
    >>> is_file_like(b"data")
    False
    """
    return isinstance(obj, FileLike) and not isinstance(obj, mmap.mmap)


def read_exact(stream: FileLike, size: int, block_type: bytes | str, section: str, address: int | None = None) -> bytes:
    """Read exactly `size` bytes from the current stream position.

    Parameters
    ----------
    stream : file handle
        Readable stream.
    size : int
        Number of bytes to read.
    block_type : bytes | str
        Block id used in the error message.
    section : str
        Name of the block section being read, used in the error message.
    address : int, optional
        Block address used in the error message.

    Returns
    -------
    data : bytes
        The requested bytes.

    Raises
    ------
    MdfIOError
        If the stream is exhausted before `size` bytes were read.
    """
    if size <= 0:
        return b""

    if size <= READ_CHUNK_SIZE:
        data = stream.read(size)
    else:
        # a corrupt size must not allocate more than the stream holds
        chunks = []
        remaining = size
        while remaining:
            chunk = stream.read(min(remaining, READ_CHUNK_SIZE))
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)

    if len(data) != size:
        if isinstance(block_type, bytes):
            block_type = block_type.decode("ascii", "replace")
        where = f" @{hex(address)}" if address is not None else ""
        message = f'truncated "{block_type}" block{where}: {section} section needs {size} bytes but got {len(data)}'
        logger.error(message)
        raise MdfIOError(message, block_type=block_type, section=section)

    return data


def decode_text(text_bytes: bytes) -> str:
    """Decode the payload of a TX/MD block.

    UTF-8 is tried first; otherwise the encoding is guessed with *chardet*
    when the ``detect_text_encoding`` option is set, or latin-1 is used.
    """
    text_bytes = text_bytes.split(b"\0", 1)[0].strip(b" \r\t\n")
    try:
        return text_bytes.decode("utf-8")
    except UnicodeDecodeError:
        pass

    encoding = None
    if get_global_option("detect_text_encoding"):
        encoding = detect(text_bytes)["encoding"]
        logger.debug(f"text block is not UTF-8 encoded; detected {encoding}")

    try:
        return text_bytes.decode(encoding or "latin-1", "replace")
    except LookupError:
        return text_bytes.decode("latin-1", "replace")


def sanitize_xml(text: str) -> str:
    """Remove the default namespace declarations from an XML comment."""
    return re.sub(_xmlns_pattern, "", text)
