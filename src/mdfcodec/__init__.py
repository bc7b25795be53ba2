"""mdfcodec is a codec for the blocks and XML metadata of ASAM MDF version 4 files"""

import logging

logger = logging.getLogger("mdfcodec")
formatter = logging.Formatter("%(name)s - %(levelname)s - %(message)s")
console = logging.StreamHandler()
console.setFormatter(formatter)
console.setLevel(logging.DEBUG)
logger.addHandler(console)
logger.setLevel(logging.ERROR)

from .blocks.block_table import BlockTable, write_blocks
from .blocks.comments import (
    AtComment,
    CcComment,
    CgComment,
    CnComment,
    comment_from_xml,
    DgComment,
    EvComment,
    FhComment,
    HdComment,
    MdAlternativeName,
    MdComment,
    MdMonotony,
    MdNumber,
    MdString,
    SiComment,
)
from .blocks.conversion import ChannelConversion
from .blocks.conversion_model import (
    HoCompuMethod,
    HoCompuScale,
    HoComputationMethodCategory,
    HoInterval,
    HoIntervalType,
    HoScaleConstraint,
    HoValidity,
)
from .blocks.endian import BigEndianValue, ByteOrder, EndianValue, LittleEndianValue
from .blocks.metadata import ETag, ETagDataType
from .blocks.options import get_global_option, set_global_option
from .blocks.utils import MdfException, MdfFormatError, MdfIOError, MdfRangeError, MdfSchemaError
from .blocks.v4_blocks import BlockHeader, DataBlock, DataInformation, ListData, TextBlock
from .blocks.v4_constants import ConversionFlags, ConversionType, LDFlags
from .version import __version__

__all__ = [
    "AtComment",
    "BigEndianValue",
    "BlockHeader",
    "BlockTable",
    "ByteOrder",
    "CcComment",
    "CgComment",
    "ChannelConversion",
    "CnComment",
    "ConversionFlags",
    "ConversionType",
    "DataBlock",
    "DataInformation",
    "DgComment",
    "ETag",
    "ETagDataType",
    "EndianValue",
    "EvComment",
    "FhComment",
    "HdComment",
    "HoCompuMethod",
    "HoCompuScale",
    "HoComputationMethodCategory",
    "HoInterval",
    "HoIntervalType",
    "HoScaleConstraint",
    "HoValidity",
    "LDFlags",
    "ListData",
    "LittleEndianValue",
    "MdAlternativeName",
    "MdComment",
    "MdMonotony",
    "MdNumber",
    "MdString",
    "MdfException",
    "MdfFormatError",
    "MdfIOError",
    "MdfRangeError",
    "MdfSchemaError",
    "SiComment",
    "TextBlock",
    "__version__",
    "comment_from_xml",
    "get_global_option",
    "set_global_option",
    "write_blocks",
]
