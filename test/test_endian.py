#!/usr/bin/env python
import math
import mmap
import unittest

import numpy as np

from mdfcodec.blocks.endian import BigEndianValue, ByteOrder, decode, encode, EndianValue, LittleEndianValue
from mdfcodec.blocks.utils import MdfRangeError


class TestEndianValue(unittest.TestCase):
    def test_little_endian_decode(self):
        buffer = bytes([0, 0, 0, 0, 66, 0, 0, 0])

        value = LittleEndianValue.from_buffer(buffer, 4, "u4")

        self.assertEqual(value.value, 66)
        self.assertEqual(value[0], 66)
        self.assertEqual(value[1], 0)
        self.assertEqual(len(value), 4)

    def test_big_endian_decode(self):
        buffer = bytes([0, 0, 0, 0, 0, 0, 0, 66])

        value = BigEndianValue.from_buffer(buffer, 4, "u4")

        self.assertEqual(value.value, 66)
        self.assertEqual(value[2], 0)
        self.assertEqual(value[3], 66)
        self.assertEqual(value.byte_order, ByteOrder.BIG)

    def test_encode(self):
        self.assertEqual(bytes(EndianValue(66, "u4", ByteOrder.BIG)), b"\x00\x00\x00B")
        self.assertEqual(bytes(EndianValue(66, "u4", "<")), b"B\x00\x00\x00")
        self.assertEqual(encode(-2, "i2", ">"), b"\xff\xfe")
        self.assertEqual(encode(1.0, "f8", "<"), np.array([1.0], dtype="<f8").tobytes())
        self.assertEqual(encode(1.5, "f4", ">"), np.array([1.5], dtype=">f4").tobytes())

    def test_width(self):
        for kind, width in (("u1", 1), ("i2", 2), ("u4", 4), ("i8", 8), ("f4", 4), ("f8", 8)):
            for byte_order in ByteOrder:
                value = EndianValue(1, kind, byte_order)
                self.assertEqual(value.width, width)
                self.assertEqual(len(bytes(value)), width)

    def test_host_independent(self):
        for kind in ("u2", "i4", "u8", "f8"):
            for byte_order in ByteOrder:
                raw = encode(123, kind, byte_order)
                expected = np.array([123], dtype=f"{byte_order.value}{kind}").tobytes()
                self.assertEqual(raw, expected)
                self.assertEqual(decode(raw, 0, kind, byte_order), 123)

    def test_decode_copies(self):
        buffer = bytearray([1, 0, 0, 0])
        value = EndianValue.from_buffer(buffer, 0, "u4")
        buffer[0] = 2

        self.assertEqual(value.value, 1)

    def test_decode_mmap(self):
        buffer = mmap.mmap(-1, 16)
        try:
            buffer[8:12] = b"\x00\x00\x01\x00"
            self.assertEqual(decode(buffer, 8, "u4", ">"), 256)
        finally:
            buffer.close()

    def test_out_of_range(self):
        buffer = bytes(8)

        with self.assertRaises(MdfRangeError):
            EndianValue.from_buffer(buffer, 5, "u4")

        with self.assertRaises(MdfRangeError):
            EndianValue.from_buffer(buffer, 1, "u8")

        with self.assertRaises(MdfRangeError):
            EndianValue.from_buffer(buffer, -1, "u1")

        with self.assertRaises(IndexError):
            decode(b"", 0, "u1")

        # the last valid offset
        self.assertEqual(decode(buffer, 4, "u4"), 0)

    def test_value_does_not_fit(self):
        with self.assertRaises(MdfRangeError):
            EndianValue(256, "u1")

        with self.assertRaises(MdfRangeError):
            EndianValue(-1, "u4")

        with self.assertRaises(MdfRangeError):
            EndianValue(1e300, "f4")

        value = EndianValue(0, "i1")
        with self.assertRaises(MdfRangeError):
            value.value = 128

    def test_set_value(self):
        value = EndianValue(0, "i2", ByteOrder.BIG)
        value.value = -1

        self.assertEqual(bytes(value), b"\xff\xff")
        self.assertEqual(value.value, -1)

    def test_float_values(self):
        value = EndianValue(math.pi, "f8", ByteOrder.BIG)
        self.assertEqual(EndianValue.from_buffer(bytes(value), 0, "f8", ByteOrder.BIG).value, math.pi)

    def test_equality(self):
        self.assertEqual(LittleEndianValue(5, "u2"), EndianValue(5, "u2", "<"))
        self.assertNotEqual(LittleEndianValue(5, "u2"), BigEndianValue(5, "u2"))

    def test_unknown_kind(self):
        with self.assertRaises(ValueError):
            EndianValue(1, "u3")


if __name__ == "__main__":
    unittest.main()
