#!/usr/bin/env python
from io import BytesIO
from struct import pack
import tempfile
import unittest

from mdfcodec.blocks.utils import MdfFormatError, MdfIOError
from mdfcodec.blocks.v4_blocks import BlockHeader


class TestBlockHeader(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.header_bytes = b"##DT\x00\x00\x00\x00" + pack("<2Q", 48, 2) + pack("<2Q", 0x40, 0)

    def test_read(self):
        stream = BytesIO(self.header_bytes + bytes(8))

        header, consumed = BlockHeader.read(stream)

        self.assertEqual(header.id, b"##DT")
        self.assertEqual(header.block_type, "DT")
        self.assertEqual(header.block_len, 48)
        self.assertEqual(header.links_nr, 2)
        self.assertEqual(header.links, [0x40, 0])
        self.assertEqual(consumed, 40)
        self.assertEqual(stream.tell(), consumed)

    def test_from_buffer(self):
        header = BlockHeader.from_buffer(bytes(8) + self.header_bytes, 8)

        self.assertEqual(header.address, 8)
        self.assertEqual(header.id, b"##DT")
        self.assertEqual(header.links, [0x40, 0])

        with self.assertRaises(MdfIOError):
            BlockHeader.from_buffer(self.header_bytes[:30])

    def test_truncated(self):
        with self.assertRaises(MdfIOError) as context:
            BlockHeader.read(BytesIO(self.header_bytes[:10]))
        self.assertEqual(context.exception.section, "header")

        with self.assertRaises(MdfIOError) as context:
            BlockHeader.read(BytesIO(self.header_bytes[:32]))
        self.assertEqual(context.exception.section, "links")

    def test_oversized_link_table(self):
        raw = b"##LD\x00\x00\x00\x00" + pack("<2Q", 2**62, 2**58) + pack("<Q", 0)

        with tempfile.TemporaryFile() as file:
            file.write(raw)
            file.seek(0)

            with self.assertRaises(MdfIOError) as context:
                BlockHeader.read(file)

        self.assertEqual(context.exception.section, "links")
        self.assertEqual(context.exception.block_type, "##LD")

    def test_length_smaller_than_header(self):
        raw = b"##DT\x00\x00\x00\x00" + pack("<2Q", 30, 2) + pack("<2Q", 0, 0)

        with self.assertRaises(MdfFormatError):
            BlockHeader.read(BytesIO(raw))

        with self.assertRaises(MdfFormatError):
            BlockHeader.from_buffer(raw)

    def test_bytes(self):
        header = BlockHeader(b"##DT", 48, [0x40, 0])

        self.assertEqual(bytes(header), self.header_bytes)

        stream = BytesIO()
        self.assertEqual(header.write(stream), 40)
        self.assertEqual(stream.getvalue(), self.header_bytes)

    def test_default_length(self):
        header = BlockHeader(b"##DI", links=[0, 0, 0])

        self.assertEqual(header.block_len, 48)
        self.assertEqual(header.size, 48)

    def test_unresolved_links(self):
        header = BlockHeader(b"##LD", 40, [0, -1])

        with self.assertRaises(MdfFormatError):
            bytes(header)


if __name__ == "__main__":
    unittest.main()
