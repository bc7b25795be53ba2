""" MDF v4 constants """

from enum import IntEnum, IntFlag
import struct

COMMON_SIZE = 24
LINK_SIZE = 8

# block identifiers handled by the codec
ID_LIST_DATA = b"##LD"
ID_DATA_INFORMATION = b"##DI"
ID_DATA = b"##DT"
ID_DATA_VALUES = b"##DV"
ID_REDUCTION_DATA = b"##RD"
ID_SIGNAL_DATA = b"##SD"
ID_TEXT = b"##TX"
ID_METADATA = b"##MD"
ID_CONVERSION = b"##CC"

DATA_BLOCK_IDS = (ID_DATA, ID_DATA_VALUES, ID_REDUCTION_DATA, ID_SIGNAL_DATA)
TEXT_BLOCK_IDS = (ID_TEXT, ID_METADATA)

FMT_COMMON = "<4sI2Q"
COMMON_u = struct.Struct(FMT_COMMON).unpack
COMMON_uf = struct.Struct(FMT_COMMON).unpack_from
COMMON_p = struct.Struct(FMT_COMMON).pack


class LDFlags(IntFlag):
    """LDBLOCK flags word"""

    EQUAL_SAMPLE_COUNT = 1
    TIME_VALUES = 1 << 1
    ANGLE_VALUES = 1 << 2
    DISTANCE_VALUES = 1 << 3
    INVALID_DATA = 1 << 31


FLAG_LD_EQUAL_SAMPLE_COUNT = LDFlags.EQUAL_SAMPLE_COUNT
FLAG_LD_TIME_VALUES = LDFlags.TIME_VALUES
FLAG_LD_ANGLE_VALUES = LDFlags.ANGLE_VALUES
FLAG_LD_DISTANCE_VALUES = LDFlags.DISTANCE_VALUES
FLAG_LD_INVALID_DATA = LDFlags.INVALID_DATA

FMT_LD_INFO = "<2I"
LD_INFO_SIZE = 8
LD_INFO_u = struct.Struct(FMT_LD_INFO).unpack
LD_INFO_p = struct.Struct(FMT_LD_INFO).pack


class ConversionType(IntEnum):
    NO_CONVERSION = 0
    LINEAR = 1
    RATIONAL = 2
    ALGEBRAIC = 3
    VALUE_TO_VALUE_INTERPOLATION = 4
    VALUE_TO_VALUE = 5
    VALUE_RANGE_TO_VALUE = 6
    VALUE_TO_TEXT = 7
    VALUE_RANGE_TO_TEXT = 8
    TEXT_TO_VALUE = 9
    TEXT_TO_TRANSLATION = 10
    BITFIELD = 11


CONVERSION_TYPE_NON = ConversionType.NO_CONVERSION
CONVERSION_TYPE_LIN = ConversionType.LINEAR
CONVERSION_TYPE_RAT = ConversionType.RATIONAL
CONVERSION_TYPE_ALG = ConversionType.ALGEBRAIC


class ConversionFlags(IntFlag):
    PRECISION_VALID = 1
    RANGE_VALID = 1 << 1
    STATUS_STRING = 1 << 2


FLAG_CC_PRECISION = ConversionFlags.PRECISION_VALID
FLAG_CC_RANGE = ConversionFlags.RANGE_VALID
FLAG_CC_STATUS_STRING = ConversionFlags.STATUS_STRING

# name, unit, comment and inverse conversion
CC_FIXED_LINKS_NR = 4
CC_COMMON_BLOCK_SIZE = 80

FMT_CONVERSION_INFO = "<2B3H2d"
CONVERSION_INFO_SIZE = 24
CONVERSION_INFO_u = struct.Struct(FMT_CONVERSION_INFO).unpack
CONVERSION_INFO_p = struct.Struct(FMT_CONVERSION_INFO).pack

# XML namespaces of the embedded metadata
MDF_XML_NAMESPACE = "http://www.asam.net/mdf/v4"
HO_XML_NAMESPACE = "http://www.asam.net/xml"
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
