import tempfile
from pathlib import Path
from unittest import IsolatedAsyncioTestCase

from autoencode.daemon import AutoEncodeDaemon

from support import FakeEncoder, make_config, make_context, make_settings


class DaemonTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.config = make_config(self.root)
        self.settings = make_settings(self.root)
        self.encoder = FakeEncoder()
        context = make_context(self.settings, encoder=self.encoder)
        context.config = self.config
        self.daemon = AutoEncodeDaemon(self.config, context)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_tv_episode_ends_up_in_library(self) -> None:
        source = self.settings.directories.watch / "Show.Name.S01E02.mkv"
        source.write_bytes(b"video")
        await self.daemon.process([source])
        target = self.settings.directories.tv / "Show Name" / "Season 1" / "1x02 - Episode Title.mp4"
        self.assertTrue(target.exists())
        self.assertEqual(list(self.settings.directories.output.iterdir()), [])
        self.assertEqual(list(self.settings.directories.staging.iterdir()), [])
        self.assertTrue(source.exists())

        await self.daemon.process([source])
        self.assertEqual(len(self.encoder.calls), 1)
