import io
import json
import stat
import subprocess
import sys
import tempfile
import unittest
import urllib.error
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "installers" / "bootstrap"))

from singbox_core.config import load_config
from singbox_bootstrap.errors import DownloadError, PlatformError, ResolutionError
from singbox_bootstrap.resolver import resolve_target
from singbox_bootstrap.service import install_release
from singbox_bootstrap.systemd import RegistrationOutcome
from singbox_bootstrap.verify import VerificationResult

ASSET_URL = (
    "https://github.com/lurixo/reF1nd-releases/releases/download/"
    "v1.13.0-alpha.27.reF1nd/sing-box-1.13.0-alpha.27.reF1nd-linux-amd64v3"
)


class _FakeResponse(io.BytesIO):
    status = 200

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def _json(payload) -> _FakeResponse:
    return _FakeResponse(json.dumps(payload).encode("utf-8"))


class InstallPipelineTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.cfg = load_config(environ={})
        self.cfg.install.install_dir = root / "usr" / "bin"
        self.cfg.service.unit_dir = root / "etc" / "systemd" / "system"
        self.cfg.service.state_dir = root / "var" / "lib" / "sing-box"
        self.cfg.service.config_dir = root / "etc" / "sing-box"
        self.verified: list[tuple[str, Path]] = []

    def tearDown(self):
        self._tmp.cleanup()

    def _verifier(self, binary_name, install_dir):
        self.verified.append((binary_name, install_dir))
        return VerificationResult(path=None, version=None)

    def _run(self, pinned=None, system="Linux", machine="x86_64"):
        return install_release(
            self.cfg,
            pinned_version=pinned,
            target=resolve_target(system, machine),
            verifier=self._verifier,
        )

    def test_prerelease_only_repository_installs_binary(self):
        responses = [
            _json({"message": "Not Found"}),
            _json([{"tag_name": "v1.13.0-alpha.27.reF1nd", "prerelease": True}]),
            _FakeResponse(b"\x7fELF new"),
        ]
        with patch("urllib.request.urlopen", side_effect=responses) as urlopen:
            result = self._run()

        self.assertEqual(urlopen.call_args_list[-1].args[0].full_url, ASSET_URL)
        self.assertEqual(result.version, "1.13.0-alpha.27.reF1nd")
        self.assertEqual(result.installed_path.read_bytes(), b"\x7fELF new")
        self.assertTrue(result.installed_path.stat().st_mode & stat.S_IXUSR)
        self.assertFalse(result.backed_up)
        self.assertIs(result.service, RegistrationOutcome.SKIPPED_NO_INIT)
        self.assertEqual(self.verified, [("sing-box", self.cfg.install.install_dir)])

    def test_pinned_upgrade_backs_up_and_registers_unit(self):
        self.cfg.install.install_dir.mkdir(parents=True)
        (self.cfg.install.install_dir / "sing-box").write_bytes(b"old")
        self.cfg.service.unit_dir.mkdir(parents=True)

        reloaded = subprocess.CompletedProcess(["systemctl", "daemon-reload"], 0, stdout="", stderr="")
        with patch("urllib.request.urlopen", side_effect=[_FakeResponse(b"new")]) as urlopen, patch(
            "subprocess.run", return_value=reloaded
        ) as run:
            result = self._run(pinned="v1.13.0")

        self.assertEqual(urlopen.call_count, 1)
        self.assertTrue(urlopen.call_args.args[0].full_url.endswith("/v1.13.0/sing-box-1.13.0-linux-amd64v3"))
        self.assertTrue(result.backed_up)
        self.assertEqual((self.cfg.install.install_dir / "sing-box.bak").read_bytes(), b"old")
        self.assertIs(result.service, RegistrationOutcome.CREATED)
        unit = (self.cfg.service.unit_dir / "sing-box.service").read_text(encoding="utf-8")
        self.assertIn(f"ExecStart={result.installed_path} -D", unit)
        self.assertTrue(self.cfg.service.state_dir.is_dir())
        run.assert_called_once()

    def test_unsupported_platform_makes_no_network_call(self):
        with patch("urllib.request.urlopen") as urlopen:
            with self.assertRaises(PlatformError):
                self._run(machine="mips64")
            urlopen.assert_not_called()
        self.assertFalse(self.cfg.install.install_dir.exists())

    def test_resolution_failure_stops_before_download(self):
        with patch("urllib.request.urlopen", side_effect=[_json({}), _json([])]) as urlopen:
            with self.assertRaises(ResolutionError):
                self._run()
        self.assertEqual(urlopen.call_count, 2)
        self.assertFalse(self.cfg.install.install_dir.exists())

    def test_missing_asset_keeps_existing_install(self):
        self.cfg.install.install_dir.mkdir(parents=True)
        (self.cfg.install.install_dir / "sing-box").write_bytes(b"old")
        error = urllib.error.HTTPError(ASSET_URL, 404, "Not Found", {}, None)

        with patch("urllib.request.urlopen", side_effect=error):
            with self.assertRaises(DownloadError) as ctx:
                self._run(pinned="1.13.0-alpha.27.reF1nd")

        self.assertIn(ASSET_URL, str(ctx.exception))
        self.assertIn("lurixo/reF1nd-releases/releases", ctx.exception.hint)
        self.assertEqual((self.cfg.install.install_dir / "sing-box").read_bytes(), b"old")
        self.assertFalse((self.cfg.install.install_dir / "sing-box.bak").exists())
        self.assertEqual(self.verified, [])


if __name__ == "__main__":
    unittest.main()
