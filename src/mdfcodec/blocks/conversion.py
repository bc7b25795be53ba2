"""
channel conversion block (CCBLOCK) of MDF version 4 files
"""

from __future__ import annotations

import logging
from struct import pack, unpack
from typing import Any, TYPE_CHECKING

from . import v4_constants as v4c
from .comments import CcComment, MdComment
from .utils import MdfException, MdfFormatError, MdfSchemaError, read_exact
from .v4_blocks import BlockHeader, read_block_header, TextBlock

if TYPE_CHECKING:
    from .block_table import BlockTable

logger = logging.getLogger("mdfcodec")

__all__ = ["ChannelConversion"]


class ChannelConversion:
    """*ChannelConversion* has the following attributes, that are also available as
    dict like key-value pairs

    CCBLOCK common fields

    * ``id`` - bytes : block ID; always b'##CC'
    * ``reserved0`` - int : reserved bytes
    * ``block_len`` - int : block bytes size
    * ``links_nr`` - int : number of links
    * ``name_addr`` - int : address of TXBLOCK that contains the
      conversion name
    * ``unit_addr`` - int : address of TXBLOCK that contains the
      conversion unit
    * ``comment_addr`` - int : address of TXBLOCK/MDBLOCK that contains the
      conversion comment
    * ``inv_conv_addr`` int : address of inverse conversion
    * ``ref_param_addrs`` - list[int] : addresses of the referenced parameters
      (formula text, value texts or partial conversions)
    * ``conversion_type`` int : integer code for conversion type
    * ``precision`` - int : number of decimals used for display
    * ``flags`` - int : conversion block flags
    * ``ref_param_nr`` - int : number of referenced parameters (linked
      parameters)
    * ``val_param_nr`` - int : number of value parameters
    * ``min_phy_value`` - float : minimum physical channel value
    * ``max_phy_value`` - float : maximum physical channel value
    * ``parameters`` - list[float] : value parameters

    Other attributes

    * ``address`` - int : channel conversion address
    * ``name`` - str : channel conversion name
    * ``unit`` - str : channel conversion unit
    * ``comment`` - CcComment : channel conversion comment
    * ``referenced_blocks`` - list : decoded referenced parameters; *str* for
      text blocks, *ChannelConversion* for partial conversions, *None* for null
      links
    * ``inverse`` - ChannelConversion | None : inverse conversion

    Parameters
    ----------
    address : int
        block address; to be used for objects created from file
    stream : handle
        file handle; to be used for objects created from file
    table : BlockTable
        block table used to resolve the text, comment and inverse links
    for dynamically created objects :
        see the key-value pairs

    """

    __slots__ = (
        "address",
        "id",
        "reserved0",
        "block_len",
        "links_nr",
        "name_addr",
        "unit_addr",
        "comment_addr",
        "inv_conv_addr",
        "ref_param_addrs",
        "conversion_type",
        "precision",
        "flags",
        "ref_param_nr",
        "val_param_nr",
        "min_phy_value",
        "max_phy_value",
        "parameters",
        "name",
        "unit",
        "comment",
        "referenced_blocks",
        "inverse",
    )

    def __init__(self, **kwargs) -> None:
        self.name = ""
        self.unit = ""
        self.comment = CcComment()
        self.referenced_blocks: list[Any] = []
        self.inverse: ChannelConversion | None = None

        try:
            header, stream = read_block_header(kwargs, v4c.ID_CONVERSION)
            self.address = address = header.address
            self.id = header.id
            self.reserved0 = header.reserved0
            self.block_len = header.block_len
            self.links_nr = header.links_nr

            if self.links_nr < v4c.CC_FIXED_LINKS_NR:
                message = f'"##CC" block @{hex(address)} has {self.links_nr} links; at least 4 are needed'
                logger.exception(message)
                raise MdfFormatError(message)

            (
                self.conversion_type,
                self.precision,
                self.flags,
                self.ref_param_nr,
                self.val_param_nr,
                self.min_phy_value,
                self.max_phy_value,
            ) = v4c.CONVERSION_INFO_u(read_exact(stream, v4c.CONVERSION_INFO_SIZE, self.id, "conversion info", address))

            if self.ref_param_nr != self.links_nr - v4c.CC_FIXED_LINKS_NR:
                message = (
                    f'"##CC" block @{hex(address)} declares {self.ref_param_nr} referenced parameters '
                    f"but has {self.links_nr - v4c.CC_FIXED_LINKS_NR} parameter links"
                )
                logger.exception(message)
                raise MdfFormatError(message)

            if self.block_len != self._expected_block_len():
                message = (
                    f'"##CC" block @{hex(address)} with {self.val_param_nr} value parameters '
                    f"needs {self._expected_block_len()} bytes but declares {self.block_len}"
                )
                logger.exception(message)
                raise MdfFormatError(message)

            try:
                self.conversion_type = v4c.ConversionType(self.conversion_type)
            except ValueError:
                logger.warning(f"unknown conversion type {self.conversion_type} @{hex(address)}")

            data = read_exact(stream, 8 * self.val_param_nr, self.id, "value parameters", address)
            self.parameters = list(unpack(f"<{self.val_param_nr}d", data))

            (self.name_addr, self.unit_addr, self.comment_addr, self.inv_conv_addr) = header.links[:4]
            self.ref_param_addrs = header.links[4:]

            self._resolve(stream, kwargs.get("table"), kwargs.get("is_inverse", False))

        except KeyError:
            self.address = 0
            self.id = v4c.ID_CONVERSION
            self.reserved0 = 0

            self.name_addr = self.unit_addr = self.comment_addr = self.inv_conv_addr = 0

            self.conversion_type = v4c.ConversionType(kwargs.get("conversion_type", v4c.CONVERSION_TYPE_NON))
            self.flags = int(kwargs.get("flags", 0))
            self.precision = 0
            self.min_phy_value = self.max_phy_value = 0.0

            self.name = kwargs.get("name", "")
            self.unit = kwargs.get("unit", "")
            comment = kwargs.get("comment", "")
            self.comment = CcComment(tx=comment) if isinstance(comment, str) else comment

            if self.conversion_type == v4c.CONVERSION_TYPE_LIN and "parameters" not in kwargs:
                self.parameters = [float(kwargs.get("b", 0.0)), float(kwargs.get("a", 1.0))]
            else:
                self.parameters = [float(value) for value in kwargs.get("parameters", ())]

            self.referenced_blocks = list(kwargs.get("referenced_blocks", ()))
            if "formula" in kwargs:
                self.formula = kwargs["formula"]
            self.ref_param_addrs = [0] * len(self.referenced_blocks)

            if "decimals" in kwargs:
                self.decimals = kwargs["decimals"]
            if "range" in kwargs:
                self.range = kwargs["range"]

            self.inverse = kwargs.get("inverse")

            self.ref_param_nr = len(self.referenced_blocks)
            self.val_param_nr = len(self.parameters)
            self.links_nr = v4c.CC_FIXED_LINKS_NR + self.ref_param_nr
            self.block_len = self._expected_block_len()

    def _expected_block_len(self) -> int:
        return v4c.CC_COMMON_BLOCK_SIZE + 8 * self.ref_param_nr + 8 * self.val_param_nr

    def _resolve(self, stream: Any, table: BlockTable | None, is_inverse: bool) -> None:
        def get(address: int, **kwargs) -> Any:
            if not address:
                return None
            if table is not None and not kwargs:
                return table.get(address)
            stream.seek(address)
            block_id = stream.read(4)
            if block_id == v4c.ID_CONVERSION:
                return ChannelConversion(address=address, stream=stream, table=table, **kwargs)
            return TextBlock(address=address, stream=stream)

        name = get(self.name_addr)
        self.name = name.decoded if name is not None else ""
        unit = get(self.unit_addr)
        self.unit = unit.decoded if unit is not None else ""

        comment = get(self.comment_addr)
        if comment is None:
            self.comment = CcComment()
        else:
            try:
                parsed = comment.comment()
            except MdfSchemaError:
                logger.error(f"could not parse conversion comment @{hex(self.comment_addr)}")
                parsed = comment.decoded
            if isinstance(parsed, CcComment):
                self.comment = parsed
            elif isinstance(parsed, MdComment):
                self.comment = CcComment(tx=parsed.tx, common_properties=parsed.common_properties)
            else:
                self.comment = CcComment(tx=parsed)

        for address in self.ref_param_addrs:
            block = get(address)
            if isinstance(block, TextBlock):
                block = block.decoded
            self.referenced_blocks.append(block)

        # the inverse conversion cannot have an inverse of its own
        if self.inv_conv_addr and not is_inverse:
            self.inverse = get(self.inv_conv_addr, is_inverse=True)

    @property
    def links(self) -> list[int]:
        return [self.name_addr, self.unit_addr, self.comment_addr, self.inv_conv_addr, *self.ref_param_addrs]

    @property
    def formula(self) -> str:
        """algebraic conversion formula; stored in the first referenced text"""
        if self.conversion_type == v4c.CONVERSION_TYPE_ALG and self.referenced_blocks:
            return self.referenced_blocks[0] or ""
        return ""

    @formula.setter
    def formula(self, formula: str) -> None:
        if self.referenced_blocks:
            self.referenced_blocks[0] = formula
        else:
            self.referenced_blocks.append(formula)
            self.ref_param_addrs = [0] * len(self.referenced_blocks)

    @property
    def a(self) -> float:
        return self.parameters[1] if self.conversion_type == v4c.CONVERSION_TYPE_LIN else 1.0

    @property
    def b(self) -> float:
        return self.parameters[0] if self.conversion_type == v4c.CONVERSION_TYPE_LIN else 0.0

    @property
    def precision_used(self) -> bool:
        return bool(self.flags & v4c.FLAG_CC_PRECISION)

    @property
    def decimals(self) -> int | None:
        """display precision; *None* when the precision flag is not set"""
        return self.precision if self.precision_used else None

    @decimals.setter
    def decimals(self, decimals: int | None) -> None:
        if decimals is None:
            self.precision = 0
            self.flags &= ~v4c.FLAG_CC_PRECISION
        else:
            if not 0 <= decimals <= 0xFF:
                raise MdfFormatError(f"conversion precision must fit in one byte, got {decimals}")
            self.precision = decimals
            self.flags |= v4c.FLAG_CC_PRECISION

    @property
    def range_used(self) -> bool:
        return bool(self.flags & v4c.FLAG_CC_RANGE)

    @property
    def range(self) -> tuple[float, float] | None:
        """(min, max) physical range; *None* when the range flag is not set"""
        if not self.range_used:
            return None
        return self.min_phy_value, self.max_phy_value

    @range.setter
    def range(self, value: tuple[float, float] | None) -> None:
        if value is None:
            self.min_phy_value = self.max_phy_value = 0.0
            self.flags &= ~v4c.FLAG_CC_RANGE
            return

        min_value, max_value = value
        if min_value > max_value:
            message = f"conversion range minimum {min_value} is greater than the maximum {max_value}"
            logger.error(message)
            raise MdfFormatError(message)

        self.min_phy_value = float(min_value)
        self.max_phy_value = float(max_value)
        self.flags |= v4c.FLAG_CC_RANGE

    @property
    def unit_used(self) -> bool:
        return bool(self.unit)

    @property
    def is_invertible(self) -> bool:
        if self.inverse is not None:
            return True

        conversion_type = self.conversion_type
        if conversion_type == v4c.CONVERSION_TYPE_NON:
            return True
        elif conversion_type == v4c.CONVERSION_TYPE_LIN:
            return self.a != 0
        elif conversion_type == v4c.CONVERSION_TYPE_RAT and len(self.parameters) == 6:
            P1, P2, P3, P4, P5, P6 = self.parameters
            return P1 == P4 == P5 == 0 and P2 != 0 and P6 != 0
        return False

    def create_inverse(self) -> ChannelConversion:
        """build the inverse of an identity, linear or linear rational
        conversion"""
        conversion_type = self.conversion_type
        if conversion_type == v4c.CONVERSION_TYPE_NON:
            inverse = ChannelConversion(conversion_type=v4c.CONVERSION_TYPE_NON)

        elif conversion_type == v4c.CONVERSION_TYPE_LIN and self.a != 0:
            a, b = self.a, self.b
            inverse = ChannelConversion(conversion_type=v4c.CONVERSION_TYPE_LIN, a=1 / a, b=-b / a)

        elif conversion_type == v4c.CONVERSION_TYPE_RAT and self.is_invertible:
            # (P2 * x + P3) / P6 -> (P6 * y - P3) / P2
            P1, P2, P3, P4, P5, P6 = self.parameters
            inverse = ChannelConversion(conversion_type=v4c.CONVERSION_TYPE_LIN, a=P6 / P2, b=-P3 / P2)

        else:
            message = f"cannot create the inverse of a {getattr(conversion_type, 'name', conversion_type)} conversion"
            logger.error(message)
            raise MdfException(message)

        inverse.name = self.name
        self.inverse = inverse
        return inverse

    def validate(self) -> None:
        if self.range_used and self.min_phy_value > self.max_phy_value:
            raise MdfFormatError(
                f"conversion range minimum {self.min_phy_value} is greater than the maximum {self.max_phy_value}"
            )
        if len(self.ref_param_addrs) != len(self.referenced_blocks):
            raise MdfFormatError(
                f"conversion has {len(self.referenced_blocks)} referenced parameters "
                f"but {len(self.ref_param_addrs)} parameter links"
            )

    def to_blocks(self, address: int, blocks: list[Any], defined_texts: dict[str, int] | None = None) -> int:
        """lay out the referenced text blocks, the comment and the inverse
        conversion followed by this block"""
        if defined_texts is None:
            defined_texts = {}

        def text_block(text: str, meta: bool = False) -> int:
            nonlocal address
            key = f"{meta}:{text}"
            if key in defined_texts:
                return defined_texts[key]

            block = TextBlock(text=text, meta=meta)
            defined_texts[key] = block_address = address
            address = block.to_blocks(address, blocks)
            return block_address

        self.name_addr = text_block(self.name) if self.name else 0
        self.unit_addr = text_block(self.unit) if self.unit else 0
        self.comment_addr = text_block(self.comment.to_xml(), meta=True) if self.comment != CcComment() else 0

        ref_param_addrs = []
        for block in self.referenced_blocks:
            if isinstance(block, ChannelConversion):
                address = block.to_blocks(address, blocks, defined_texts)
                ref_param_addrs.append(block.address)
            elif block:
                ref_param_addrs.append(text_block(block))
            else:
                ref_param_addrs.append(0)
        self.ref_param_addrs = ref_param_addrs

        if self.inverse is not None:
            self.inverse.inverse = None
            address = self.inverse.to_blocks(address, blocks, defined_texts)
            self.inv_conv_addr = self.inverse.address
        else:
            self.inv_conv_addr = 0

        self.ref_param_nr = len(self.ref_param_addrs)
        self.val_param_nr = len(self.parameters)
        self.links_nr = v4c.CC_FIXED_LINKS_NR + self.ref_param_nr
        self.block_len = self._expected_block_len()

        self.address = address
        blocks.append(self)
        return address + self.block_len

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __bytes__(self) -> bytes:
        self.validate()

        self.ref_param_nr = len(self.ref_param_addrs)
        self.val_param_nr = len(self.parameters)
        self.links_nr = v4c.CC_FIXED_LINKS_NR + self.ref_param_nr
        self.block_len = self._expected_block_len()

        header = BlockHeader(self.id, self.block_len, self.links, self.reserved0)
        return (
            bytes(header)
            + v4c.CONVERSION_INFO_p(
                self.conversion_type,
                self.precision,
                self.flags,
                self.ref_param_nr,
                self.val_param_nr,
                self.min_phy_value,
                self.max_phy_value,
            )
            + pack(f"<{self.val_param_nr}d", *self.parameters)
        )

    def __repr__(self) -> str:
        return (
            f"ChannelConversion(address={hex(self.address)}, "
            f"conversion_type={getattr(self.conversion_type, 'name', self.conversion_type)}, "
            f"name={self.name!r}, unit={self.unit!r}, parameters={self.parameters})"
        )
