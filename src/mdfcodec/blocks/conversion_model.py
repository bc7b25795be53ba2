"""
ASAM harmonized objects (``ho`` namespace) used by the conversion comments
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any
from xml.etree import ElementTree as ET

from . import v4_constants as v4c

logger = logging.getLogger("mdfcodec")

ET.register_namespace("ho", v4c.HO_XML_NAMESPACE)

__all__ = [
    "HoCompuMethod",
    "HoCompuScale",
    "HoComputationMethodCategory",
    "HoInterval",
    "HoIntervalType",
    "HoScaleConstraint",
    "HoValidity",
    "ho_tag",
    "set_if_not_default",
]


def ho_tag(tag: str) -> str:
    return f"{{{v4c.HO_XML_NAMESPACE}}}{tag}"


class HoIntervalType(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    INFINITE = "INFINITE"


class HoValidity(Enum):
    VALID = "VALID"
    NOT_VALID = "NOT-VALID"
    NOT_AVAILABLE = "NOT-AVAILABLE"


class HoComputationMethodCategory(Enum):
    IDENTICAL = "IDENTICAL"
    LINEAR = "LINEAR"
    SCALE_LINEAR = "SCALE-LINEAR"
    TEXTTABLE = "TEXTTABLE"
    TAB_NOINTP = "TAB-NOINTP"
    SCALE_LINEAR_AND_TEXTTABLE = "SCALE-LINEAR-AND-TEXTTABLE"
    RAT_FUNC = "RAT-FUNC"
    SCALE_RAT_FUNC = "SCALE-RAT-FUNC"
    BITFIELD_TEXTTABLE = "BITFIELD-TEXTTABLE"


def set_if_not_default(element: ET.Element, attribute: str, value: Any, default: Any) -> None:
    """set the XML attribute only when *value* differs from *default*"""
    if value == default:
        return
    if isinstance(value, Enum):
        value = value.value
    element.set(attribute, str(value))


def _enum_from_xml(enum: type[Enum], text: str | None, default: Enum) -> Any:
    if not text:
        return default
    try:
        return enum(text.strip())
    except ValueError:
        logger.debug(f'unknown {enum.__name__} "{text}"; using {default.value}')
        return default


def _float_from_xml(element: ET.Element | None) -> float | None:
    if element is None or not (element.text or "").strip():
        return None
    try:
        return float(element.text)
    except ValueError:
        logger.debug(f'"{element.tag}" holds "{element.text}" which is not a number')
        return None


def _text_from_xml(element: ET.Element | None) -> str:
    if element is None:
        return ""
    return element.text or ""


def _float_to_text(value: float) -> str:
    return repr(float(value))


class _HoObject:
    __slots__ = ()

    def _fields(self) -> tuple:
        return tuple(
            getattr(self, name) for cls in type(self).__mro__ for name in getattr(cls, "__slots__", ())
        )

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._fields() == other._fields()

    def __repr__(self) -> str:
        fields = ", ".join(
            f"{name}={getattr(self, name)!r}"
            for cls in reversed(type(self).__mro__)
            for name in getattr(cls, "__slots__", ())
        )
        return f"{type(self).__name__}({fields})"


class HoInterval(_HoObject):
    """limit of a scale constraint; inactive when *limit* is *None*"""

    __slots__ = ("limit", "type")

    def __init__(self, limit: float | None = None, type: HoIntervalType = HoIntervalType.CLOSED) -> None:
        self.limit = limit
        self.type = type

    @property
    def is_active(self) -> bool:
        return self.limit is not None

    def to_xml(self, parent: ET.Element, tag: str) -> ET.Element | None:
        if not self.is_active:
            return None

        element = ET.SubElement(parent, tag)
        element.text = _float_to_text(self.limit)
        set_if_not_default(element, "INTERVAL-TYPE", self.type, HoIntervalType.CLOSED)
        return element

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> HoInterval:
        if element is None:
            return cls()
        return cls(
            _float_from_xml(element),
            _enum_from_xml(HoIntervalType, element.get("INTERVAL-TYPE"), HoIntervalType.CLOSED),
        )


class HoScaleConstraint(_HoObject):
    """lower and upper limit of a valid (or invalid) value range"""

    __slots__ = ("lower_limit", "upper_limit", "validity")

    xml_tag = ho_tag("SCALE-CONSTR")

    def __init__(
        self,
        lower_limit: HoInterval | None = None,
        upper_limit: HoInterval | None = None,
        validity: HoValidity = HoValidity.VALID,
    ) -> None:
        self.lower_limit = lower_limit or HoInterval()
        self.upper_limit = upper_limit or HoInterval()
        self.validity = validity

    @property
    def is_active(self) -> bool:
        return self.lower_limit.is_active or self.upper_limit.is_active

    def _limits_to_xml(self, element: ET.Element) -> None:
        self.lower_limit.to_xml(element, ho_tag("LOWER-LIMIT"))
        self.upper_limit.to_xml(element, ho_tag("UPPER-LIMIT"))
        set_if_not_default(element, "VALIDITY", self.validity, HoValidity.VALID)

    def _limits_from_xml(self, element: ET.Element) -> None:
        self.lower_limit = HoInterval.from_xml(element.find(ho_tag("LOWER-LIMIT")))
        self.upper_limit = HoInterval.from_xml(element.find(ho_tag("UPPER-LIMIT")))
        self.validity = _enum_from_xml(HoValidity, element.get("VALIDITY"), HoValidity.VALID)

    def to_xml(self, parent: ET.Element) -> ET.Element | None:
        if not self.is_active:
            return None

        element = ET.SubElement(parent, self.xml_tag)
        self._limits_to_xml(element)
        return element

    @classmethod
    def from_xml(cls, element: ET.Element) -> HoScaleConstraint:
        constraint = cls()
        constraint._limits_from_xml(element)
        return constraint


class HoCompuScale(HoScaleConstraint):
    """one segment of a computation method

    The segment applies to the raw values inside its limits and holds either a
    constant result (number or text), rational function coefficients or a
    generic math expression.
    """

    __slots__ = ("descriptions", "const_value", "const_text", "numerators", "denominators", "generic_math")

    xml_tag = ho_tag("COMPU-SCALE")

    def __init__(
        self,
        lower_limit: HoInterval | None = None,
        upper_limit: HoInterval | None = None,
        validity: HoValidity = HoValidity.VALID,
        *,
        descriptions: list[str] | None = None,
        const_value: float | None = None,
        const_text: str = "",
        numerators: list[float] | None = None,
        denominators: list[float] | None = None,
        generic_math: str = "",
    ) -> None:
        super().__init__(lower_limit, upper_limit, validity)
        self.descriptions = list(descriptions or [])
        self.const_value = const_value
        self.const_text = const_text
        self.numerators = [float(value) for value in numerators or ()]
        self.denominators = [float(value) for value in denominators or ()]
        self.generic_math = generic_math

    def to_xml(self, parent: ET.Element) -> ET.Element:
        element = ET.SubElement(parent, self.xml_tag)

        for description in self.descriptions:
            ET.SubElement(element, ho_tag("DESC")).text = description

        self._limits_to_xml(element)

        if self.const_value is not None or self.const_text:
            const = ET.SubElement(element, ho_tag("COMPU-CONST"))
            if self.const_value is not None:
                ET.SubElement(const, ho_tag("V")).text = _float_to_text(self.const_value)
            if self.const_text:
                ET.SubElement(const, ho_tag("VT")).text = self.const_text

        if self.numerators or self.denominators:
            coeffs = ET.SubElement(element, ho_tag("COMPU-RATIONAL-COEFFS"))
            for tag, values in (("COMPU-NUMERATOR", self.numerators), ("COMPU-DENOMINATOR", self.denominators)):
                if values:
                    coeff_list = ET.SubElement(coeffs, ho_tag(tag))
                    for value in values:
                        ET.SubElement(coeff_list, ho_tag("V")).text = _float_to_text(value)

        if self.generic_math:
            ET.SubElement(element, ho_tag("COMPU-GENERIC-MATH")).text = self.generic_math

        return element

    @classmethod
    def from_xml(cls, element: ET.Element) -> HoCompuScale:
        scale = cls()
        scale._limits_from_xml(element)

        scale.descriptions = [_text_from_xml(desc) for desc in element.findall(ho_tag("DESC"))]

        const = element.find(ho_tag("COMPU-CONST"))
        if const is not None:
            scale.const_value = _float_from_xml(const.find(ho_tag("V")))
            scale.const_text = _text_from_xml(const.find(ho_tag("VT")))

        coeffs = element.find(ho_tag("COMPU-RATIONAL-COEFFS"))
        if coeffs is not None:
            for tag, attribute in (("COMPU-NUMERATOR", "numerators"), ("COMPU-DENOMINATOR", "denominators")):
                coeff_list = coeffs.find(ho_tag(tag))
                if coeff_list is not None:
                    values = (_float_from_xml(value) for value in coeff_list.findall(ho_tag("V")))
                    setattr(scale, attribute, [value for value in values if value is not None])

        scale.generic_math = _text_from_xml(element.find(ho_tag("COMPU-GENERIC-MATH")))
        return scale


class HoCompuMethod(_HoObject):
    """``ho:COMPU-METHOD`` of a CC comment

    *HoCompuMethod* has the following attributes

    * ``short_name`` - str : ``ho:SHORT-NAME``
    * ``description`` - str : ``ho:DESC``
    * ``category`` - HoComputationMethodCategory : default IDENTICAL
    * ``unit_ref`` - str : ``ID-REF`` of ``ho:UNIT-REF``
    * ``physical_constraints`` - list[HoScaleConstraint] : ``ho:PHYS-CONSTRS``
    * ``internal_constraints`` - list[HoScaleConstraint] : ``ho:INTERNAL-CONSTRS``
    * ``compu_scales`` - list[HoCompuScale] : ``ho:COMPU-SCALES``
    * ``default_value`` - float | None : numeric ``ho:COMPU-DEFAULT-VALUE``
    * ``default_text`` - str : text ``ho:COMPU-DEFAULT-VALUE``

    """

    __slots__ = (
        "short_name",
        "description",
        "category",
        "unit_ref",
        "physical_constraints",
        "internal_constraints",
        "compu_scales",
        "default_value",
        "default_text",
    )

    xml_tag = ho_tag("COMPU-METHOD")

    def __init__(self, **kwargs) -> None:
        self.short_name = kwargs.get("short_name", "")
        self.description = kwargs.get("description", "")
        self.category = kwargs.get("category", HoComputationMethodCategory.IDENTICAL)
        self.unit_ref = kwargs.get("unit_ref", "")
        self.physical_constraints = list(kwargs.get("physical_constraints", ()))
        self.internal_constraints = list(kwargs.get("internal_constraints", ()))
        self.compu_scales = list(kwargs.get("compu_scales", ()))
        self.default_value = kwargs.get("default_value")
        self.default_text = kwargs.get("default_text", "")

    @property
    def is_active(self) -> bool:
        return self != HoCompuMethod()

    def add_physical_constraint(self, constraint: HoScaleConstraint) -> None:
        self.physical_constraints.append(constraint)

    def add_internal_constraint(self, constraint: HoScaleConstraint) -> None:
        self.internal_constraints.append(constraint)

    def add_compu_scale(self, scale: HoCompuScale) -> None:
        self.compu_scales.append(scale)

    def to_xml(self, parent: ET.Element) -> ET.Element | None:
        if not self.is_active:
            return None

        element = ET.SubElement(parent, self.xml_tag)

        if self.short_name:
            ET.SubElement(element, ho_tag("SHORT-NAME")).text = self.short_name
        if self.description:
            ET.SubElement(element, ho_tag("DESC")).text = self.description
        if self.category != HoComputationMethodCategory.IDENTICAL:
            ET.SubElement(element, ho_tag("CATEGORY")).text = self.category.value
        if self.unit_ref:
            ET.SubElement(element, ho_tag("UNIT-REF"), {"ID-REF": self.unit_ref})

        for tag, constraints in (
            ("PHYS-CONSTRS", self.physical_constraints),
            ("INTERNAL-CONSTRS", self.internal_constraints),
        ):
            if constraints:
                constraint_list = ET.SubElement(element, ho_tag(tag))
                for constraint in constraints:
                    constraint.to_xml(constraint_list)

        if self.compu_scales or self.default_value is not None or self.default_text:
            internal_to_phys = ET.SubElement(element, ho_tag("COMPU-INTERNAL-TO-PHYS"))
            if self.compu_scales:
                scales = ET.SubElement(internal_to_phys, ho_tag("COMPU-SCALES"))
                for scale in self.compu_scales:
                    scale.to_xml(scales)

            if self.default_value is not None or self.default_text:
                default = ET.SubElement(internal_to_phys, ho_tag("COMPU-DEFAULT-VALUE"))
                if self.default_value is not None:
                    ET.SubElement(default, ho_tag("V")).text = _float_to_text(self.default_value)
                if self.default_text:
                    ET.SubElement(default, ho_tag("VT")).text = self.default_text

        return element

    @classmethod
    def from_xml(cls, element: ET.Element | None) -> HoCompuMethod:
        method = cls()
        if element is None:
            return method

        method.short_name = _text_from_xml(element.find(ho_tag("SHORT-NAME")))
        method.description = _text_from_xml(element.find(ho_tag("DESC")))
        method.category = _enum_from_xml(
            HoComputationMethodCategory,
            _text_from_xml(element.find(ho_tag("CATEGORY"))),
            HoComputationMethodCategory.IDENTICAL,
        )

        unit_ref = element.find(ho_tag("UNIT-REF"))
        if unit_ref is not None:
            method.unit_ref = unit_ref.get("ID-REF", "")

        for tag, constraints in (
            ("PHYS-CONSTRS", method.physical_constraints),
            ("INTERNAL-CONSTRS", method.internal_constraints),
        ):
            constraint_list = element.find(ho_tag(tag))
            if constraint_list is not None:
                constraints.extend(
                    HoScaleConstraint.from_xml(constraint)
                    for constraint in constraint_list.findall(HoScaleConstraint.xml_tag)
                )

        internal_to_phys = element.find(ho_tag("COMPU-INTERNAL-TO-PHYS"))
        if internal_to_phys is not None:
            scales = internal_to_phys.find(ho_tag("COMPU-SCALES"))
            if scales is not None:
                method.compu_scales = [
                    HoCompuScale.from_xml(scale) for scale in scales.findall(HoCompuScale.xml_tag)
                ]

            default = internal_to_phys.find(ho_tag("COMPU-DEFAULT-VALUE"))
            if default is not None:
                method.default_value = _float_from_xml(default.find(ho_tag("V")))
                method.default_text = _text_from_xml(default.find(ho_tag("VT")))

        return method
