import asyncio
import tempfile
from pathlib import Path
from unittest import IsolatedAsyncioTestCase

from autoencode.errors import TransientIOError
from autoencode.ingest import IngestionQueue, RetryPolicy
from autoencode.store import RecordStore


class FakeRunner:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: list[str] = []

    async def __call__(self, items):
        self.calls.append(str(items[0].source_path))
        await asyncio.sleep(0)
        if self.failures:
            self.failures -= 1
            raise TransientIOError("archive stream broke")
        return items


class IngestionQueueTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = RecordStore(self.root / "files.db")
        self.sleeps: list[float] = []

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def _sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def _queue(self, runner, retries: int = 0) -> IngestionQueue:
        return IngestionQueue(
            self.store,
            runner,
            retry=RetryPolicy(retries=retries, backoff_seconds=1, max_backoff_seconds=3),
            sleep=self._sleep,
        )

    async def test_same_path_is_processed_once(self) -> None:
        runner = FakeRunner()
        queue = self._queue(runner)
        path = self.root / "a.mkv"
        first = await queue.submit(path)
        second = await queue.submit(path)
        self.assertIs(first, second)
        await queue.join()
        self.assertIsNone(await queue.submit(path))
        self.assertEqual(len(runner.calls), 1)
        self.assertTrue(self.store.contains(queue.key_for(path)))

    async def test_failed_run_releases_record(self) -> None:
        runner = FakeRunner(failures=1)
        queue = self._queue(runner, retries=0)
        path = self.root / "a.mkv"
        task = await queue.submit(path)
        self.assertIsNone(await task)
        self.assertFalse(self.store.contains(queue.key_for(path)))
        task = await queue.submit(path)
        self.assertIsNotNone(await task)
        self.assertEqual(len(runner.calls), 2)

    async def test_retries_with_backoff(self) -> None:
        runner = FakeRunner(failures=2)
        queue = self._queue(runner, retries=2)
        task = await queue.submit(self.root / "a.mkv")
        result = await task
        self.assertEqual(len(result), 1)
        self.assertEqual(self.sleeps, [1, 2])
        self.assertEqual(len(runner.calls), 3)

    async def test_backoff_is_capped(self) -> None:
        policy = RetryPolicy(retries=5, backoff_seconds=1, max_backoff_seconds=3)
        self.assertEqual([policy.delay(n) for n in range(4)], [1, 2, 3, 3])

    async def test_events_flow_through_consumer(self) -> None:
        runner = FakeRunner()
        queue = self._queue(runner)
        consumer = asyncio.create_task(queue.consume())
        for name in ("a.mkv", "b.mkv", "a.mkv"):
            queue.put(self.root / name)
        await queue.join()
        consumer.cancel()
        await asyncio.gather(consumer, return_exceptions=True)
        self.assertEqual(sorted(Path(p).name for p in runner.calls), ["a.mkv", "b.mkv"])
