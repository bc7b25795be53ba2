"""
XML comment documents stored in the MDBLOCKs of MDF version 4 files

Every comment kind binds one root element (``FHcomment``, ``SIcomment`` ...)
and a fixed set of child fields. The documents are written with the
``http://www.asam.net/mdf/v4`` default namespace; harmonized objects use the
``ho`` prefix.
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, ClassVar
from xml.dom import minidom
from xml.etree import ElementTree as ET

from . import v4_constants as v4c
from .conversion_model import HoCompuMethod
from .metadata import common_properties_from_xml, common_properties_to_xml, ETag
from .options import get_global_option
from .utils import MdfSchemaError, sanitize_xml

logger = logging.getLogger("mdfcodec")

__all__ = [
    "COMMENT_TYPES",
    "AtComment",
    "CcComment",
    "CgComment",
    "CnComment",
    "DgComment",
    "EvComment",
    "FhComment",
    "HdComment",
    "MdAlternativeName",
    "MdComment",
    "MdMonotony",
    "MdNumber",
    "MdString",
    "SiComment",
    "comment_from_xml",
]

_LANG = f"{{{v4c.XML_NAMESPACE}}}lang"


def _creator_index(element: ET.Element) -> int:
    try:
        return int(element.get("ci", -1))
    except ValueError:
        return -1


class MdString:
    """text with an optional language and file history reference"""

    __slots__ = ("text", "language", "creator_index")

    def __init__(self, text: str = "", language: str = "", creator_index: int = -1) -> None:
        self.text = text
        self.language = language
        self.creator_index = creator_index

    @property
    def is_active(self) -> bool:
        return bool(self.text)

    def to_xml(self, parent: ET.Element, tag: str, required: bool = False) -> ET.Element | None:
        if not (self.is_active or required):
            return None
        element = ET.SubElement(parent, tag)
        if self.text:
            element.text = self.text
        if self.language:
            element.set(_LANG, self.language)
        if self.creator_index >= 0:
            element.set("ci", str(self.creator_index))
        return element

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> MdString:
        if element is None:
            return cls()
        return cls(element.text or "", element.get(_LANG, ""), _creator_index(element))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return self.text == other
        if not isinstance(other, MdString):
            return NotImplemented
        return (self.text, self.language, self.creator_index) == (other.text, other.language, other.creator_index)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"MdString(text={self.text!r}, language={self.language!r}, creator_index={self.creator_index})"


class MdNumber:
    """text backed number with an optional unit"""

    __slots__ = ("text", "unit", "unit_ref", "creator_index")

    def __init__(
        self,
        number: int | float | None = None,
        unit: str = "",
        unit_ref: str = "",
        creator_index: int = -1,
    ) -> None:
        self.text = ""
        self.unit = unit
        self.unit_ref = unit_ref
        self.creator_index = creator_index
        if number is not None:
            self.set(number)

    @property
    def is_active(self) -> bool:
        return bool(self.text)

    def set(self, number: int | float) -> None:
        self.text = repr(number) if isinstance(number, float) else str(int(number))

    def get(self, kind: type = float) -> int | float:
        try:
            if kind is int:
                try:
                    return int(self.text, 0)
                except ValueError:
                    return int(float(self.text))
            return float(self.text)
        except ValueError:
            return kind()

    def __float__(self) -> float:
        return float(self.get(float))

    def __int__(self) -> int:
        return int(self.get(int))

    def to_xml(self, parent: ET.Element, tag: str) -> ET.Element | None:
        if not self.is_active:
            return None
        element = ET.SubElement(parent, tag)
        element.text = self.text
        if self.unit:
            element.set("unit", self.unit)
        if self.unit_ref:
            element.set("unit_ref", self.unit_ref)
        if self.creator_index >= 0:
            element.set("ci", str(self.creator_index))
        return element

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> MdNumber:
        number = cls()
        if element is not None:
            number.text = (element.text or "").strip()
            number.unit = element.get("unit", "")
            number.unit_ref = element.get("unit_ref", "")
            number.creator_index = _creator_index(element)
        return number

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MdNumber):
            return NotImplemented
        return (self.text, self.unit, self.unit_ref, self.creator_index) == (
            other.text,
            other.unit,
            other.unit_ref,
            other.creator_index,
        )

    def __repr__(self) -> str:
        return f"MdNumber(text={self.text!r}, unit={self.unit!r})"


class MdAlternativeName:
    """default name followed by alternative names, written as ``<name>``
    children of the field element"""

    __slots__ = ("default_name", "alternative_names")

    def __init__(self, default_name: MdString | str = "", alternative_names: list[MdString] | None = None) -> None:
        if isinstance(default_name, str):
            default_name = MdString(default_name)
        self.default_name = default_name
        self.alternative_names = list(alternative_names or [])

    @property
    def is_active(self) -> bool:
        return self.default_name.is_active or any(name.is_active for name in self.alternative_names)

    def add_alternative_name(self, name: MdString | str) -> None:
        if isinstance(name, str):
            name = MdString(name)
        self.alternative_names.append(name)

    def to_xml(self, parent: ET.Element, tag: str) -> ET.Element | None:
        if not self.is_active:
            return None
        element = ET.SubElement(parent, tag)
        # empty names are written too, to keep the position of the default name
        for name in (self.default_name, *self.alternative_names):
            name.to_xml(element, "name", required=True)
        return element

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> MdAlternativeName:
        if element is None:
            return cls()
        names = [MdString.from_xml(name) for name in element.findall("name")]
        if not names:
            return cls()
        return cls(names[0], names[1:])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MdAlternativeName):
            return NotImplemented
        return (self.default_name, self.alternative_names) == (other.default_name, other.alternative_names)

    def __repr__(self) -> str:
        return f"MdAlternativeName(default_name={self.default_name!r}, alternative_names={self.alternative_names!r})"


class MdMonotony(Enum):
    MON_DECREASE = "MON_DECREASE"
    MON_INCREASE = "MON_INCREASE"
    STRICT_DECREASE = "STRICT_DECREASE"
    STRICT_INCREASE = "STRICT_INCREASE"
    MONOTONOUS = "MONOTONOUS"
    STRICT_MON = "STRICT_MON"
    NOT_MONO = "NOT_MONO"


def _field_to_xml(root: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, MdMonotony):
        if value is not MdMonotony.NOT_MONO:
            ET.SubElement(root, tag).text = value.value
    elif isinstance(value, HoCompuMethod):
        value.to_xml(root)
    else:
        value.to_xml(root, tag)


def _field_from_xml(root: ET.Element, tag: str, kind: type) -> Any:
    if kind is HoCompuMethod:
        return HoCompuMethod.from_xml(root.find(HoCompuMethod.xml_tag))

    element = root.find(tag)
    if kind is MdMonotony:
        if element is None or not element.text:
            return MdMonotony.NOT_MONO
        try:
            return MdMonotony(element.text.strip())
        except ValueError:
            logger.debug(f'unknown axis monotony "{element.text}"')
            return MdMonotony.NOT_MONO

    return kind.from_xml(element)


class MdComment:
    """base of the comment documents

    *MdComment* has the following attributes, that are also available as
    dict like key-value pairs

    * ``tx`` - MdString : comment text (``<TX>``)
    * ``names`` - MdAlternativeName : alternative names (``<names>``)
    * ``common_properties`` - list[ETag] : ``<common_properties>`` entries

    Subclasses describe their extra fields in ``FIELDS`` as
    ``(attribute, XML tag, type)`` tuples in document order.

    """

    ROOT_TAG: ClassVar[str] = ""
    FIELDS: ClassVar[tuple[tuple[str, str, type], ...]] = ()

    def __init__(self, **kwargs) -> None:
        tx = kwargs.get("tx", "")
        self.tx = MdString(tx) if isinstance(tx, str) else tx
        self.names = kwargs.get("names") or MdAlternativeName()
        self.common_properties: list[ETag] = []
        for tag in kwargs.get("common_properties", ()):
            self.add_property(tag)

        for attribute, _, kind in self.FIELDS:
            value = kwargs.get(attribute)
            if value is None:
                value = MdMonotony.NOT_MONO if kind is MdMonotony else kind()
            elif kind is MdString and isinstance(value, str):
                value = MdString(value)
            elif kind is MdNumber and isinstance(value, (int, float)):
                value = MdNumber(value)
            self[attribute] = value

    @property
    def block_type(self) -> str:
        return self.ROOT_TAG[:2]

    @property
    def comment(self) -> str:
        return self.tx.text

    @comment.setter
    def comment(self, value: str) -> None:
        self.tx = MdString(value)

    def add_property(self, tag: ETag) -> None:
        """add a common property; an existing property with the same name is
        replaced"""
        for i, existing in enumerate(self.common_properties):
            if existing.name == tag.name:
                self.common_properties[i] = tag
                break
        else:
            self.common_properties.append(tag)

    def get_property(self, name: str) -> ETag | None:
        for tag in self.common_properties:
            if tag.name == name:
                return tag
        return None

    def to_element(self) -> ET.Element:
        root = ET.Element(self.ROOT_TAG, xmlns=v4c.MDF_XML_NAMESPACE)
        self.tx.to_xml(root, "TX")
        self.names.to_xml(root, "names")
        for attribute, tag, _ in self.FIELDS:
            _field_to_xml(root, tag, self[attribute])
        common_properties_to_xml(root, self.common_properties)
        return root

    def to_xml(self) -> str:
        comment_xml = ET.tostring(self.to_element(), encoding="unicode", method="xml")

        if not get_global_option("xml_pretty_print"):
            return comment_xml

        comment_xml = minidom.parseString(comment_xml).toprettyxml(indent=get_global_option("xml_indent"))

        # drop the XML declaration; text nodes are kept as they are
        return comment_xml.split("\n", 1)[1].rstrip("\n")

    def from_element(self, root: ET.Element) -> None:
        if root.tag != self.ROOT_TAG:
            message = f'Expected "{self.ROOT_TAG}" comment but found "{root.tag}"'
            logger.error(message)
            raise MdfSchemaError(message)

        self.tx = MdString.from_xml(root.find("TX"))
        self.names = MdAlternativeName.from_xml(root.find("names"))
        for attribute, tag, kind in self.FIELDS:
            self[attribute] = _field_from_xml(root, tag, kind)

        self.common_properties = []
        for tag in common_properties_from_xml(root.find("common_properties")):
            self.add_property(tag)

    def from_xml(self, text: str) -> None:
        """replace the content with the parsed document

        Raises
        ------
        MdfSchemaError
            for malformed XML or a different root element

        """
        self.from_element(_parse(text))

    def __getitem__(self, item: str) -> Any:
        return self.__getattribute__(item)

    def __setitem__(self, item: str, value: Any) -> None:
        self.__setattr__(item, value)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        attributes = ("tx", "names", "common_properties", *(attribute for attribute, _, _ in self.FIELDS))
        return all(self[attribute] == other[attribute] for attribute in attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(tx={self.tx.text!r}, properties={len(self.common_properties)})"


class AtComment(MdComment):
    ROOT_TAG = "ATcomment"


class CcComment(MdComment):
    ROOT_TAG = "CCcomment"
    FIELDS = (("compu_method", "COMPU-METHOD", HoCompuMethod),)


class CgComment(MdComment):
    ROOT_TAG = "CGcomment"


class CnComment(MdComment):
    ROOT_TAG = "CNcomment"
    FIELDS = (
        ("linker_name", "linker_name", MdString),
        ("linker_address", "linker_address", MdNumber),
        ("axis_monotony", "axis_monotony", MdMonotony),
        ("raster", "raster", MdNumber),
        ("address", "address", MdNumber),
    )


class DgComment(MdComment):
    ROOT_TAG = "DGcomment"


class EvComment(MdComment):
    ROOT_TAG = "EVcomment"
    FIELDS = (
        ("pre_trigger_interval", "pre_trigger_interval", MdNumber),
        ("post_trigger_interval", "post_trigger_interval", MdNumber),
        ("timeout", "timeout", MdNumber),
    )


class FhComment(MdComment):
    ROOT_TAG = "FHcomment"
    FIELDS = (
        ("tool_id", "tool_id", MdString),
        ("tool_vendor", "tool_vendor", MdString),
        ("tool_version", "tool_version", MdString),
        ("user_name", "user_name", MdString),
    )


class HdComment(MdComment):
    ROOT_TAG = "HDcomment"

    def _get_text_property(self, name: str) -> str:
        tag = self.get_property(name)
        return "" if tag is None else tag.value

    def _set_text_property(self, name: str, value: str) -> None:
        self.add_property(ETag(name, value))

    @property
    def author(self) -> str:
        return self._get_text_property("author")

    @author.setter
    def author(self, value: str) -> None:
        self._set_text_property("author", value)

    @property
    def project(self) -> str:
        return self._get_text_property("project")

    @project.setter
    def project(self, value: str) -> None:
        self._set_text_property("project", value)

    @property
    def department(self) -> str:
        return self._get_text_property("department")

    @department.setter
    def department(self, value: str) -> None:
        self._set_text_property("department", value)

    @property
    def subject(self) -> str:
        return self._get_text_property("subject")

    @subject.setter
    def subject(self, value: str) -> None:
        self._set_text_property("subject", value)


class SiComment(MdComment):
    ROOT_TAG = "SIcomment"
    FIELDS = (
        ("path", "path", MdAlternativeName),
        ("bus", "bus", MdAlternativeName),
        ("protocol", "protocol", MdString),
    )


COMMENT_TYPES: dict[str, type[MdComment]] = {
    cls.ROOT_TAG: cls
    for cls in (AtComment, CcComment, CgComment, CnComment, DgComment, EvComment, FhComment, HdComment, SiComment)
}


def _parse(text: str) -> ET.Element:
    try:
        return ET.fromstring(sanitize_xml(text))
    except ET.ParseError as e:
        message = f"could not parse comment; {e}"
        logger.error(message)
        raise MdfSchemaError(message) from None


def comment_from_xml(text: str) -> MdComment:
    """parse a comment document into the class bound to its root element

    Raises
    ------
    MdfSchemaError
        for malformed XML or an unknown root element

    """
    root = _parse(text)
    try:
        cls = COMMENT_TYPES[root.tag]
    except KeyError:
        message = f'unknown comment root element "{root.tag}"'
        logger.warning(message)
        raise MdfSchemaError(message) from None

    comment = cls()
    comment.from_element(root)
    return comment
