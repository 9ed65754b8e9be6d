import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from s3nav.app import build_parser, main
from s3nav.config import (
    DEFAULT_TIMEOUT_SECONDS,
    MOCK_ENDPOINT_URL,
    EndpointConfig,
    config_base_dir,
    timeout_from_env,
)
from s3nav.models import bucket_entry
from s3nav.s3 import TransportCanceled, TransportFailed


class _StubService:
    def __init__(self, endpoint, error=None) -> None:
        self.endpoint = endpoint
        self.error = error

    async def list_buckets(self):
        if self.error is not None:
            raise self.error
        return [bucket_entry("alpha")]


class TestParser(unittest.TestCase):
    def test_mock_flag(self) -> None:
        self.assertFalse(build_parser().parse_args([]).mock)
        self.assertTrue(build_parser().parse_args(["--mock"]).mock)

    def test_unknown_flags_are_rejected(self) -> None:
        with self.assertRaises(SystemExit):
            with patch("sys.stderr"):
                build_parser().parse_args(["--region", "us-west-2"])


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch("s3nav.app.configure_logging", return_value=Path("s3nav.log"))
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_runs_browser_with_mock_endpoint(self) -> None:
        services = []

        def _make_service(endpoint):
            service = _StubService(endpoint)
            services.append(service)
            return service

        with patch("s3nav.app.S3Service", side_effect=_make_service), patch(
            "s3nav.app.S3Navigator"
        ) as navigator:
            navigator.return_value.return_code = 0
            code = main(["--mock"])

        self.assertEqual(code, 0)
        self.assertEqual(services[0].endpoint.endpoint_url, MOCK_ENDPOINT_URL)
        args, kwargs = navigator.call_args
        self.assertIs(args[0], services[0])
        self.assertEqual(args[1], [bucket_entry("alpha")])
        self.assertIn("hard_exit_grace", kwargs)
        navigator.return_value.run.assert_called_once_with()

    def test_startup_log_reports_mock_endpoint(self) -> None:
        with patch(
            "s3nav.app.S3Service", side_effect=lambda endpoint: _StubService(endpoint)
        ), patch("s3nav.app.S3Navigator") as navigator:
            navigator.return_value.return_code = 0
            with self.assertLogs("s3nav.app", level="INFO") as logs:
                main(["--mock"])
        self.assertIn("mock=True", "\n".join(logs.output))

    def test_startup_listing_failure_exits_nonzero(self) -> None:
        for error in (TransportFailed("AccessDenied"), TransportCanceled("timeout")):
            with patch(
                "s3nav.app.S3Service",
                side_effect=lambda endpoint, error=error: _StubService(endpoint, error),
            ), patch("s3nav.app.S3Navigator") as navigator, patch("sys.stderr"):
                code = main([])
            self.assertEqual(code, 1)
            navigator.assert_not_called()


class TestConfig(unittest.TestCase):
    def test_mock_endpoint(self) -> None:
        endpoint = EndpointConfig.mock()
        self.assertTrue(endpoint.is_mock)
        self.assertTrue(endpoint.path_style)
        self.assertEqual(endpoint.access_key, "access_key")
        self.assertEqual(endpoint.secret_key, "secret_key")

    def test_aws_endpoint_uses_default_chain(self) -> None:
        endpoint = EndpointConfig.aws()
        self.assertFalse(endpoint.is_mock)
        self.assertIsNone(endpoint.access_key)

    def test_timeout_from_env(self) -> None:
        with patch.dict(os.environ, {"S3NAV_TIMEOUT_SECONDS": "5"}):
            self.assertEqual(timeout_from_env(), 5.0)
        with patch.dict(os.environ, {"S3NAV_TIMEOUT_SECONDS": "soon"}):
            self.assertEqual(timeout_from_env(), DEFAULT_TIMEOUT_SECONDS)
        with patch.dict(os.environ, {"S3NAV_TIMEOUT_SECONDS": "-1"}):
            self.assertEqual(timeout_from_env(), DEFAULT_TIMEOUT_SECONDS)

    def test_config_dir_honours_xdg(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict(os.environ, {"XDG_CONFIG_HOME": temp_dir}):
                self.assertEqual(config_base_dir(), Path(temp_dir) / "s3nav")


if __name__ == "__main__":
    unittest.main()
