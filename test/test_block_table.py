#!/usr/bin/env python
from io import BytesIO
import mmap
import os
from pathlib import Path
import tempfile
import unittest

import mdfcodec.blocks.v4_constants as v4c
from mdfcodec.blocks.block_table import BlockTable, write_blocks
from mdfcodec.blocks.utils import MdfFormatError
from mdfcodec.blocks.v4_blocks import DataBlock, DataInformation, ListData, TextBlock


def build_chain():
    """two LD blocks, each listing data blocks with invalidation blocks"""
    blocks = []
    address = 64

    payloads = [b"\x01" * 8, b"\x02" * 16, b"\x03" * 8]
    invalidation = [b"\x00", b"\xff\x0f", b"\x01"]

    data_blocks = []
    invalidation_blocks = []
    for payload, bits in zip(payloads, invalidation):
        data = DataBlock(data=payload)
        address = data.to_blocks(address, blocks)
        data_blocks.append(data)

        di = DataInformation(data=bits)
        address = di.to_blocks(address, blocks)
        invalidation_blocks.append(di)

    flags = v4c.FLAG_LD_INVALID_DATA | v4c.FLAG_LD_TIME_VALUES
    second = ListData(
        flags=flags,
        data_block_addrs=[data_blocks[2].address],
        invalidation_bits_addrs=[invalidation_blocks[2].address],
        offsets=[24],
        time_values=[300],
    )
    address = second.to_blocks(address, blocks)

    first = ListData(
        flags=flags,
        next_ld_addr=second.address,
        data_block_addrs=[block.address for block in data_blocks[:2]],
        invalidation_bits_addrs=[block.address for block in invalidation_blocks[:2]],
        offsets=[0, 8],
        time_values=[0, 100],
    )
    address = first.to_blocks(address, blocks)

    return blocks, first, payloads, invalidation, address


class TestBlockTable(unittest.TestCase):
    def setUp(self):
        self.blocks, self.first, self.payloads, self.invalidation, self.end = build_chain()
        self.stream = BytesIO()
        self.assertEqual(write_blocks(self.blocks, self.stream), self.end)

    def test_block_pairs(self):
        table = BlockTable(self.stream)

        pairs = list(table.block_pairs(self.first.address))

        self.assertEqual(len(pairs), 3)
        for (data, invalidation), payload, bits in zip(pairs, self.payloads, self.invalidation):
            self.assertIsInstance(data, DataBlock)
            self.assertIsInstance(invalidation, DataInformation)
            self.assertEqual(data.data, payload)
            self.assertEqual(table.read_payload(data), payload)
            self.assertEqual(table.read_payload(invalidation), bits)

    def test_iter_list_data(self):
        table = BlockTable(self.stream.getvalue())

        chain = list(table.iter_list_data(self.first.address))

        self.assertEqual(len(chain), 2)
        self.assertEqual(chain[0].time_values.tolist(), [0, 100])
        self.assertEqual(chain[1].time_values.tolist(), [300])
        self.assertEqual(chain[1].next_ld_addr, 0)

    def test_resolve(self):
        table = BlockTable(self.stream)
        ld = table.get(self.first.address)

        linked = table.resolve(ld)

        self.assertEqual(len(linked), ld.links_nr)
        self.assertIsInstance(linked[0], ListData)
        self.assertIsInstance(linked[1], DataBlock)
        self.assertIsInstance(linked[3], DataInformation)

    def test_cache(self):
        table = BlockTable(self.stream)

        self.assertIsNone(table.get(0))
        self.assertEqual(len(table), 0)

        block = table.get(self.first.address)
        self.assertIn(self.first.address, table)
        self.assertIs(table.get(self.first.address), block)
        self.assertEqual(list(table), [block])

    def test_without_invalidation_data(self):
        blocks = []
        data = DataBlock(data=b"\x00" * 4, type="DV")
        address = data.to_blocks(64, blocks)
        ld = ListData(
            flags=v4c.FLAG_LD_EQUAL_SAMPLE_COUNT,
            data_block_addrs=[data.address],
            equal_sample_count=4,
        )
        ld.to_blocks(address, blocks)

        stream = BytesIO()
        write_blocks(blocks, stream)
        table = BlockTable(stream)

        self.assertEqual(list(table.block_pairs(ld.address)), [(table.get(data.address), None)])
        self.assertEqual(table.get(data.address).id, b"##DV")

    def test_unknown_block(self):
        stream = BytesIO(bytes(64) + b"##XX" + bytes(20))

        with self.assertRaises(MdfFormatError):
            BlockTable(stream).get(64)

    def test_list_data_loop(self):
        blocks = []
        ld = ListData(flags=v4c.FLAG_LD_EQUAL_SAMPLE_COUNT)
        ld.to_blocks(64, blocks)
        stream = BytesIO()
        write_blocks(blocks, stream)

        ld.next_ld_addr = 64
        stream.seek(64)
        stream.write(bytes(ld))

        with self.assertRaises(MdfFormatError):
            list(BlockTable(stream).iter_list_data(64))

    def test_not_a_list(self):
        blocks = []
        TextBlock(text="not a list").to_blocks(64, blocks)
        stream = BytesIO()
        write_blocks(blocks, stream)

        with self.assertRaises(MdfFormatError):
            list(BlockTable(stream).iter_list_data(64))

    def test_write_order(self):
        blocks = list(reversed(self.blocks))

        with self.assertRaises(MdfFormatError):
            write_blocks(blocks, BytesIO())

    def test_mmap(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "blocks.bin"
            path.write_bytes(self.stream.getvalue())

            with open(path, "rb") as file, mmap.mmap(file.fileno(), 0, access=mmap.ACCESS_READ) as mapped:
                table = BlockTable(mapped)
                pairs = list(table.block_pairs(self.first.address))
                del table

            self.assertEqual([pair[0].data for pair in pairs], self.payloads)
            self.assertTrue(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
