import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from s3nav.app import S3Navigator, command_for_key
from s3nav.machine import (
    CMD_ACTIVATE,
    CMD_CANCEL,
    CMD_DOWN,
    CMD_QUIT,
    MODE_DETAIL,
    MODE_LIST,
    MODE_MENU,
)
from s3nav.models import (
    ObjectMetadata,
    bucket_entry,
    object_entry,
    parent_entry,
    prefix_entry,
)
from s3nav.s3 import TransportCanceled

ROOT = [bucket_entry("alpha"), bucket_entry("beta")]
ALPHA = [parent_entry(), prefix_entry("logs/"), object_entry("readme.txt", size=42)]


class _StubService:
    def __init__(self) -> None:
        self.list_calls: list[tuple[str, str]] = []
        self.fetch_calls: list[tuple[str, str]] = []
        self.fail_listing = False

    async def list_buckets(self):
        return list(ROOT)

    async def list_entries(self, bucket, prefix):
        self.list_calls.append((bucket, prefix))
        if self.fail_listing:
            raise TransportCanceled("list_objects_v2 canceled due to timeout")
        if prefix:
            return [parent_entry()]
        return list(ALPHA)

    async def fetch_object(self, bucket, key, writer) -> int:
        self.fetch_calls.append((bucket, key))
        writer.write(b"x" * 42)
        return 42

    async def get_metadata(self, bucket, key):
        return ObjectMetadata(bucket=bucket, key=key, size=42)


class TestKeymap(unittest.TestCase):
    def test_keys_depend_on_mode(self) -> None:
        self.assertEqual(command_for_key(MODE_LIST, "j"), CMD_DOWN)
        self.assertEqual(command_for_key(MODE_LIST, "enter"), CMD_ACTIVATE)
        self.assertEqual(command_for_key(MODE_LIST, "q"), CMD_QUIT)
        self.assertEqual(command_for_key(MODE_MENU, "q"), CMD_CANCEL)
        self.assertEqual(command_for_key(MODE_DETAIL, "escape"), CMD_CANCEL)
        self.assertIsNone(command_for_key(MODE_DETAIL, "w"))


class TestTuiMount(unittest.IsolatedAsyncioTestCase):
    async def test_app_mounts_headless(self) -> None:
        app = S3Navigator(_StubService(), ROOT)
        async with app.run_test() as pilot:
            await pilot.pause()
            self.assertEqual(app.s3_table.row_count, 2)
            self.assertTrue(app.session.node.is_root)

    async def test_descend_uses_cache_on_revisit(self) -> None:
        service = _StubService()
        app = S3Navigator(service, ROOT)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            self.assertEqual(app.session.bucket, "alpha")
            self.assertEqual(app.s3_table.row_count, 3)
            await pilot.press("h")
            await pilot.press("l")
            await pilot.pause()
            self.assertEqual(service.list_calls, [("alpha", "")])
            self.assertEqual(app.session.node.key, "alpha")

    async def test_download_scenario(self) -> None:
        service = _StubService()
        with tempfile.TemporaryDirectory() as temp_dir:
            app = S3Navigator(service, ROOT, download_dir=Path(temp_dir))
            async with app.run_test() as pilot:
                await pilot.press("enter", "j", "j", "w")
                await pilot.pause()
                self.assertEqual(service.fetch_calls, [("alpha", "readme.txt")])
                self.assertIn("s3://alpha/readme.txt", app.session.status)
                self.assertEqual(app.session.node.cursor, 2)
                self.assertEqual(app.session.mode, MODE_LIST)
            self.assertTrue((Path(temp_dir) / "readme.txt").exists())

    async def test_download_on_prefix_is_rejected(self) -> None:
        service = _StubService()
        app = S3Navigator(service, ROOT)
        async with app.run_test() as pilot:
            await pilot.press("enter", "j", "w")
            await pilot.pause()
            self.assertEqual(service.fetch_calls, [])
            self.assertEqual(app.session.status, "Invalid entry type")

    async def test_menu_cancel_keeps_position(self) -> None:
        app = S3Navigator(_StubService(), ROOT)
        async with app.run_test() as pilot:
            await pilot.press("j", "m")
            await pilot.pause()
            self.assertEqual(app.session.mode, MODE_MENU)
            self.assertTrue(app.menu_panel.display)
            await pilot.press("j", "j", "q")
            await pilot.pause()
            self.assertEqual(app.session.mode, MODE_LIST)
            self.assertFalse(app.menu_panel.display)
            self.assertEqual(app.session.node.cursor, 1)
            self.assertIs(app.session.node, app.session.root)

    async def test_detail_panel_opens_and_closes(self) -> None:
        app = S3Navigator(_StubService(), ROOT)
        async with app.run_test() as pilot:
            await pilot.press("enter", "j", "j", "d")
            await pilot.pause()
            self.assertEqual(app.session.mode, MODE_DETAIL)
            self.assertTrue(app.detail_panel.display)
            await pilot.press("escape")
            await pilot.pause()
            self.assertEqual(app.session.mode, MODE_LIST)
            self.assertFalse(app.detail_panel.display)

    async def test_listing_timeout_is_reported_without_descending(self) -> None:
        service = _StubService()
        service.fail_listing = True
        app = S3Navigator(service, ROOT)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            self.assertIs(app.session.node, app.session.root)
            self.assertEqual(app.session.root.children, {})
            self.assertIn("canceled", app.session.status)

    async def test_quit_arms_hard_exit_timer_before_exiting(self) -> None:
        app = S3Navigator(_StubService(), ROOT, hard_exit_grace=0.5)
        calls: list[str] = []
        with patch("s3nav.app.threading.Timer") as timer_cls, patch.object(
            app, "exit", side_effect=lambda **_kwargs: calls.append("exit")
        ) as exit_mock:
            timer_cls.return_value.start.side_effect = lambda: calls.append("timer")
            async with app.run_test() as pilot:
                await pilot.press("q")
                await pilot.pause()
                timer_cls.assert_called_once_with(0.5, os._exit, args=(0,))
                self.assertTrue(timer_cls.return_value.daemon)
                exit_mock.assert_called_once_with(return_code=0)
                self.assertEqual(calls, ["timer", "exit"])

    async def test_quit_exits_with_zero(self) -> None:
        app = S3Navigator(_StubService(), ROOT)
        with patch.object(app, "exit") as exit_mock:
            async with app.run_test() as pilot:
                await pilot.press("q")
                await pilot.pause()
                exit_mock.assert_called_once_with(return_code=0)


if __name__ == "__main__":
    unittest.main()
