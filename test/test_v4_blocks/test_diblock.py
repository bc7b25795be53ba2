#!/usr/bin/env python
from io import BytesIO
from struct import pack
import unittest

from mdfcodec.blocks.utils import MdfException, MdfIOError
from mdfcodec.blocks.v4_blocks import BlockHeader, DataInformation


class TestDIBLOCK(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.payload = b"\x01\x02\x03\x04\x05"
        cls.di_bytes = b"##DI\x00\x00\x00\x00" + pack("<2Q", 24 + len(cls.payload), 0) + cls.payload

    def test_read(self):
        stream = BytesIO(bytes(16) + self.di_bytes)

        block = DataInformation(address=16, stream=stream)

        self.assertEqual(block.id, b"##DI")
        self.assertEqual(block.address, 16)
        self.assertEqual(block.data_position, 16 + 24)
        self.assertEqual(block.size(), len(self.payload))
        # the payload is located, not read
        self.assertEqual(stream.tell(), 16 + 24)
        self.assertIsNone(block.data)

        self.assertEqual(block.read_data(stream), self.payload)
        self.assertEqual(block.data, self.payload)

    def test_read_with_links(self):
        raw = bytes(BlockHeader(b"##DI", 24 + 16 + 3, [0x100, 0])) + b"abc"

        block = DataInformation(address=0, stream=BytesIO(raw))

        self.assertEqual(block.links, [0x100, 0])
        self.assertEqual(block.data_position, 40)
        self.assertEqual(block.size(), 3)

    def test_read_wrong_id(self):
        stream = BytesIO(self.di_bytes)
        stream.write(b"##DT")

        with self.assertRaises(MdfException):
            DataInformation(address=0, stream=stream)

    def test_read_data_truncated(self):
        stream = BytesIO(self.di_bytes[:-2])
        block = DataInformation(address=0, stream=stream)

        with self.assertRaises(MdfIOError) as context:
            block.read_data(stream)

        self.assertEqual(context.exception.section, "data")

    def test_size_never_negative(self):
        block = DataInformation(data=b"")
        self.assertEqual(block.size(), 0)

        block.block_len = 10
        with self.assertLogs("mdfcodec", level="WARNING"):
            self.assertEqual(block.size(), 0)

        block.block_len = 24
        block.links_nr = 2
        with self.assertLogs("mdfcodec", level="WARNING"):
            self.assertEqual(block.size(), 0)

        block.block_len = 40
        self.assertEqual(block.size(), 0)

    def test_bytes(self):
        block = DataInformation(data=self.payload)

        self.assertEqual(block.block_len, 24 + len(self.payload))
        self.assertEqual(bytes(block), self.di_bytes)

    def test_bytes_without_payload(self):
        stream = BytesIO(self.di_bytes)
        block = DataInformation(address=0, stream=stream)

        with self.assertRaises(MdfException):
            bytes(block)

        block.read_data(stream)
        self.assertEqual(bytes(block), self.di_bytes)


if __name__ == "__main__":
    unittest.main()
