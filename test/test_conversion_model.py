#!/usr/bin/env python
import unittest
from xml.etree import ElementTree as ET

from mdfcodec.blocks.conversion_model import (
    ho_tag,
    HoCompuMethod,
    HoCompuScale,
    HoComputationMethodCategory,
    HoInterval,
    HoIntervalType,
    HoScaleConstraint,
    HoValidity,
    set_if_not_default,
)

HO = "{http://www.asam.net/xml}"


class TestHoInterval(unittest.TestCase):
    def test_inactive(self):
        parent = ET.Element("constraint")

        self.assertIsNone(HoInterval().to_xml(parent, ho_tag("LOWER-LIMIT")))
        self.assertEqual(len(parent), 0)

    def test_default_type(self):
        parent = ET.Element("constraint")

        HoInterval(1.5).to_xml(parent, ho_tag("LOWER-LIMIT"))

        element = parent.find(f"{HO}LOWER-LIMIT")
        self.assertEqual(element.text, "1.5")
        self.assertEqual(element.attrib, {})

    def test_non_default_type(self):
        parent = ET.Element("constraint")

        HoInterval(-2, HoIntervalType.OPEN).to_xml(parent, ho_tag("UPPER-LIMIT"))

        element = parent.find(f"{HO}UPPER-LIMIT")
        self.assertEqual(float(element.text), -2.0)
        self.assertEqual(element.get("INTERVAL-TYPE"), "OPEN")

        self.assertEqual(HoInterval.from_xml(element), HoInterval(-2.0, HoIntervalType.OPEN))

    def test_from_xml(self):
        self.assertEqual(HoInterval.from_xml(None), HoInterval())

        element = ET.fromstring('<LOWER-LIMIT INTERVAL-TYPE="HALF">3</LOWER-LIMIT>')
        self.assertEqual(HoInterval.from_xml(element), HoInterval(3.0))

        element = ET.fromstring("<LOWER-LIMIT>abc</LOWER-LIMIT>")
        self.assertFalse(HoInterval.from_xml(element).is_active)


class TestHoScaleConstraint(unittest.TestCase):
    def test_inactive(self):
        parent = ET.Element("PHYS-CONSTRS")

        self.assertFalse(HoScaleConstraint().is_active)
        self.assertIsNone(HoScaleConstraint(validity=HoValidity.NOT_VALID).to_xml(parent))
        self.assertEqual(len(parent), 0)

    def test_validity(self):
        parent = ET.Element("PHYS-CONSTRS")

        element = HoScaleConstraint(HoInterval(0)).to_xml(parent)
        self.assertIsNone(element.get("VALIDITY"))
        self.assertIsNotNone(element.find(f"{HO}LOWER-LIMIT"))
        self.assertIsNone(element.find(f"{HO}UPPER-LIMIT"))

        constraint = HoScaleConstraint(HoInterval(0), HoInterval(10, HoIntervalType.INFINITE), HoValidity.NOT_AVAILABLE)
        element = constraint.to_xml(parent)
        self.assertEqual(element.tag, f"{HO}SCALE-CONSTR")
        self.assertEqual(element.get("VALIDITY"), "NOT-AVAILABLE")

        self.assertEqual(HoScaleConstraint.from_xml(element), constraint)

    def test_set_if_not_default(self):
        element = ET.Element("node")

        set_if_not_default(element, "VALIDITY", HoValidity.VALID, HoValidity.VALID)
        self.assertEqual(element.attrib, {})

        set_if_not_default(element, "VALIDITY", HoValidity.NOT_VALID, HoValidity.VALID)
        set_if_not_default(element, "COUNT", 3, 0)
        self.assertEqual(element.attrib, {"VALIDITY": "NOT-VALID", "COUNT": "3"})


class TestHoCompuMethod(unittest.TestCase):
    def test_inactive(self):
        parent = ET.Element("CCcomment")

        self.assertFalse(HoCompuMethod().is_active)
        self.assertIsNone(HoCompuMethod().to_xml(parent))
        self.assertEqual(len(parent), 0)

    def test_category_default_omitted(self):
        parent = ET.Element("CCcomment")

        element = HoCompuMethod(short_name="raw").to_xml(parent)

        self.assertIsNone(element.find(f"{HO}CATEGORY"))
        self.assertEqual(element.find(f"{HO}SHORT-NAME").text, "raw")

    def test_round_trip(self):
        method = HoCompuMethod(
            short_name="gear",
            description="gear position",
            category=HoComputationMethodCategory.SCALE_LINEAR_AND_TEXTTABLE,
            unit_ref="unit_gear",
            default_text="invalid",
        )
        method.add_physical_constraint(HoScaleConstraint(HoInterval(-1), HoInterval(6)))
        method.add_internal_constraint(
            HoScaleConstraint(HoInterval(255), HoInterval(255), HoValidity.NOT_VALID)
        )
        method.add_compu_scale(
            HoCompuScale(HoInterval(0), HoInterval(0), const_text="neutral", descriptions=["idle"])
        )
        method.add_compu_scale(
            HoCompuScale(
                HoInterval(1),
                HoInterval(6, HoIntervalType.OPEN),
                numerators=[0, 1],
                denominators=[1],
            )
        )
        method.add_compu_scale(HoCompuScale(HoInterval(7), const_value=7.5, generic_math="X1*2"))

        parent = ET.Element("CCcomment")
        element = method.to_xml(parent)

        self.assertEqual(element.tag, f"{HO}COMPU-METHOD")
        self.assertEqual(element.find(f"{HO}UNIT-REF").get("ID-REF"), "unit_gear")
        scales = element.find(f"{HO}COMPU-INTERNAL-TO-PHYS/{HO}COMPU-SCALES")
        self.assertEqual(len(scales), 3)

        text = ET.tostring(parent, encoding="unicode")
        self.assertIn("ho:COMPU-METHOD", text)

        parsed = HoCompuMethod.from_xml(ET.fromstring(text).find(f"{HO}COMPU-METHOD"))
        self.assertEqual(parsed, method)
        self.assertEqual(parsed.compu_scales[1].numerators, [0.0, 1.0])
        self.assertEqual(parsed.compu_scales[0].const_text, "neutral")
        self.assertIsNone(parsed.default_value)

    def test_unknown_category(self):
        element = ET.fromstring(
            '<ho:COMPU-METHOD xmlns:ho="http://www.asam.net/xml"><ho:CATEGORY>FANCY</ho:CATEGORY></ho:COMPU-METHOD>'
        )

        method = HoCompuMethod.from_xml(element)

        self.assertIs(method.category, HoComputationMethodCategory.IDENTICAL)


if __name__ == "__main__":
    unittest.main()
