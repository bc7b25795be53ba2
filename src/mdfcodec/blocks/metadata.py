"""
named values (``<e>``) and value trees (``<tree>``) of the MDF4 XML comments
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time
from enum import IntEnum
import logging
from typing import Any, TypeVar
from xml.etree import ElementTree as ET

logger = logging.getLogger("mdfcodec")

__all__ = [
    "ETag",
    "ETagDataType",
    "common_properties_from_xml",
    "common_properties_to_xml",
    "decode_bool",
]

_T = TypeVar("_T")

TRUE_CHARS = frozenset("TtYy1")


def decode_bool(text: str | None) -> bool:
    """lenient boolean decoding: true if the first character is one of
    ``T t Y y 1``"""
    return bool(text) and text[0] in TRUE_CHARS


class ETagDataType(IntEnum):
    STRING = 0
    DECIMAL = 1
    INTEGER = 2
    FLOAT = 3
    BOOLEAN = 4
    DATE = 5
    TIME = 6
    DATE_TIME = 7

    @property
    def xml_name(self) -> str:
        return _XML_TYPE_NAMES[self]

    @classmethod
    def from_xml_name(cls, name: str) -> ETagDataType:
        for data_type, xml_name in _XML_TYPE_NAMES.items():
            if xml_name == name:
                return data_type
        return cls.STRING


_XML_TYPE_NAMES = {
    ETagDataType.STRING: "string",
    ETagDataType.DECIMAL: "decimal",
    ETagDataType.INTEGER: "integer",
    ETagDataType.FLOAT: "float",
    ETagDataType.BOOLEAN: "boolean",
    ETagDataType.DATE: "date",
    ETagDataType.TIME: "time",
    ETagDataType.DATE_TIME: "dateTime",
}

_DEFAULTS: dict[type, Any] = {
    str: "",
    int: 0,
    float: 0.0,
    bool: False,
    datetime: datetime.min,
    date: date.min,
    time: time.min,
}


def _default_value(kind: type) -> Any:
    if kind in _DEFAULTS:
        return _DEFAULTS[kind]
    try:
        return kind()
    except (TypeError, ValueError):
        return None


# attribute name, XML attribute name
_TEXT_ATTRIBUTES = (
    ("description", "desc"),
    ("unit", "unit"),
    ("unit_ref", "unit_ref"),
    ("type", "type"),
    ("language", "language"),
)

_LANG = "{http://www.w3.org/XML/1998/namespace}lang"


class ETag:
    """named value of a comment's ``common_properties``

    The value is stored as text; *set_value* writes the canonical text of a
    python value and *get_value* converts it back, returning the default of
    the requested type when the text is empty or cannot be parsed.

    A tag with children (*tree_list*) is written as ``<tree>``, otherwise as
    ``<e>``. Tags with a blank name are not written.

    Examples
    --------
    >>> tag = ETag("Active")
    >>> tag.set_value(True)
    >>> tag.value
    'true'
    >>> tag.get_value(bool)
    True

    """

    __slots__ = (
        "name",
        "description",
        "unit",
        "unit_ref",
        "type",
        "language",
        "read_only",
        "creator_index",
        "_value",
        "tree_list",
    )

    def __init__(
        self,
        name: str = "",
        value: Any = None,
        *,
        description: str = "",
        unit: str = "",
        unit_ref: str = "",
        data_type: ETagDataType = ETagDataType.STRING,
        type: str = "",
        language: str = "",
        read_only: bool = False,
        creator_index: int = -1,
    ) -> None:
        self.name = name
        self.description = description
        self.unit = unit
        self.unit_ref = unit_ref
        self.type = type
        if data_type != ETagDataType.STRING:
            self.data_type = data_type
        self.language = language
        self.read_only = read_only
        self.creator_index = creator_index
        self._value = ""
        self.tree_list: list[ETag] = []

        if value is not None:
            self.set_value(value)

    @property
    def value(self) -> str:
        return self._value

    @value.setter
    def value(self, text: str) -> None:
        self._value = text or ""

    @property
    def data_type(self) -> ETagDataType:
        """value type derived from the XML primitive type name"""
        return ETagDataType.from_xml_name(self.type)

    @data_type.setter
    def data_type(self, data_type: ETagDataType) -> None:
        self.type = ETagDataType(data_type).xml_name

    @property
    def is_active(self) -> bool:
        return bool(self.name)

    def set_value(self, value: Any) -> None:
        if isinstance(value, bool):
            self._value = "true" if value else "false"
        elif isinstance(value, float):
            self._value = repr(value)
        elif isinstance(value, (datetime, date, time)):
            self._value = value.isoformat()
        else:
            self._value = str(value)

    def get_value(self, kind: type[_T] = str) -> _T:
        if kind is str:
            return self._value

        text = self._value.strip()
        default = _default_value(kind)
        if not text:
            return default

        try:
            if kind is bool:
                return decode_bool(text)
            elif kind is int:
                try:
                    return int(text)
                except ValueError:
                    return int(float(text))
            elif kind is float:
                return float(text)
            elif kind is datetime:
                return datetime.fromisoformat(text)
            elif kind is date:
                return date.fromisoformat(text[:10])
            elif kind is time:
                return time.fromisoformat(text)
            else:
                return kind(text)
        except (ValueError, ArithmeticError, TypeError):
            logger.debug(f'ETag "{self.name}": cannot convert "{text}" to {kind.__name__}')
            return default

    def add_tag(self, tag: ETag) -> None:
        self.tree_list.append(tag)

    def to_xml(self, parent: ET.Element) -> ET.Element | None:
        """append this tag to *parent*; blank names are dropped"""
        if not self.is_active:
            logger.warning("ETag without name is not stored")
            return None

        element = ET.SubElement(parent, "tree" if self.tree_list else "e", name=self.name)
        for attribute, xml_name in _TEXT_ATTRIBUTES:
            value = self[attribute]
            if value:
                element.set(xml_name, value)

        if self.read_only:
            element.set("ro", "true")
        if self.creator_index >= 0:
            element.set("ci", str(self.creator_index))

        if self.tree_list:
            for tag in self.tree_list:
                tag.to_xml(element)
        elif self._value:
            element.text = self._value

        return element

    @classmethod
    def from_xml(cls, element: ET.Element) -> ETag:
        tag = cls(element.get("name", ""))
        for attribute, xml_name in _TEXT_ATTRIBUTES:
            tag[attribute] = element.get(xml_name, "")
        if not tag.language:
            tag.language = element.get(_LANG, "")

        tag.read_only = decode_bool(element.get("ro"))
        try:
            tag.creator_index = int(element.get("ci", -1))
        except ValueError:
            tag.creator_index = -1

        if element.tag in ("tree", "list", "elist", "li"):
            for child in element:
                if child.tag in ("e", "tree", "list", "elist", "li"):
                    tag.add_tag(cls.from_xml(child))
        else:
            tag.value = element.text or ""

        return tag

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ETag):
            return NotImplemented
        return all(self[name] == other[name] for name in self.__slots__)

    def __repr__(self) -> str:
        return f"ETag(name={self.name!r}, value={self._value!r}, tree_list={self.tree_list!r})"


def common_properties_to_xml(parent: ET.Element, tags: Iterable[ETag]) -> ET.Element | None:
    """write a ``<common_properties>`` element; nothing if no tag is active"""
    tags = [tag for tag in tags if tag.is_active]
    if not tags:
        return None

    element = ET.SubElement(parent, "common_properties")
    for tag in tags:
        tag.to_xml(element)
    return element


def common_properties_from_xml(element: ET.Element | None) -> list[ETag]:
    if element is None:
        return []
    return [ETag.from_xml(child) for child in element if child.tag in ("e", "tree", "list", "elist")]
