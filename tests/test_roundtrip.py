"""
End-to-end tests: a Sender streaming into a Receiver over loopback.
"""

import asyncio
import os
import tempfile
import unittest
from pathlib import Path

from tcpdrop.errors import ConflictError, CopyError, ShutdownError
from tcpdrop.transfer import Receiver, Sender


class TestRoundTrip(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        (self.tmp / 'in').mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    async def transfer(self, sources, targets, overwrite=False, chunk_size=64 * 1024):
        receiver = Receiver(targets, host='127.0.0.1', port=0,
                            overwrite=overwrite, chunk_size=chunk_size)
        async with receiver:
            serve = asyncio.create_task(receiver.serve())
            sender = Sender(sources, host='127.0.0.1', port=receiver.address[1],
                            chunk_size=chunk_size)
            sent = await sender.run()
            received = await asyncio.wait_for(serve, timeout=10)
        return sent, received

    async def test_two_files_example(self):
        """5-byte and empty files land in out/a.bin and out/b.bin."""
        a = self.tmp / 'in' / 'a.bin'
        b = self.tmp / 'in' / 'b.bin'
        a.write_bytes(b'\x01\x02\x03\x04\x05')
        b.write_bytes(b'')
        out_a = self.tmp / 'out' / 'a.bin'
        out_b = self.tmp / 'out' / 'b.bin'

        sent, received = await self.transfer([a, b], [out_a, out_b], overwrite=True)

        self.assertEqual(out_a.read_bytes(), b'\x01\x02\x03\x04\x05')
        self.assertEqual(out_b.read_bytes(), b'')
        self.assertEqual([r.bytes_transferred for r in sent], [5, 0])
        self.assertEqual([r.bytes_transferred for r in received], [5, 0])

    async def test_binary_contents_preserved(self):
        sources = []
        for i, size in enumerate([1, 4096, 300_001]):
            path = self.tmp / 'in' / f'{i}.bin'
            path.write_bytes(os.urandom(size))
            sources.append(path)
        targets = [self.tmp / 'out' / f'copy-{i}.bin' for i in range(3)]

        await self.transfer(sources, targets, chunk_size=1024)

        for source, target in zip(sources, targets):
            self.assertEqual(target.read_bytes(), source.read_bytes())

    async def test_existing_target_is_left_unchanged(self):
        source = self.tmp / 'in' / 'a.bin'
        source.write_bytes(b'incoming')
        target = self.tmp / 'out' / 'a.bin'
        target.parent.mkdir()
        target.write_bytes(b'already here')

        receiver = Receiver([target], host='127.0.0.1', port=0)
        async with receiver:
            serve = asyncio.create_task(receiver.serve())
            try:
                await Sender([source], host='127.0.0.1',
                             port=receiver.address[1]).run()
            except (CopyError, ShutdownError):
                # The receiver may reset the refused connection
                pass
            with self.assertRaises(ConflictError):
                await asyncio.wait_for(serve, timeout=10)

        self.assertEqual(target.read_bytes(), b'already here')


if __name__ == '__main__':
    unittest.main()
