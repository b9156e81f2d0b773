import subprocess
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "installers" / "bootstrap"))

from singbox_bootstrap.verify import verify_installation


class VerifyInstallationTests(unittest.TestCase):
    def test_not_on_path_is_a_warning(self):
        calls = []
        with self.assertLogs("singbox_installer", level="WARNING") as logs:
            result = verify_installation(
                "sing-box",
                Path("/usr/bin"),
                which=lambda _name: None,
                run=lambda cmd, **_kw: calls.append(cmd),
            )
        self.assertFalse(result.found)
        self.assertIsNone(result.version)
        self.assertEqual(calls, [])
        self.assertIn("/usr/bin", "\n".join(logs.output))

    def test_reports_version_output(self):
        calls = []

        def fake_run(cmd, **_kw):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="sing-box version 1.13.0\n", stderr="")

        result = verify_installation("sing-box", Path("/usr/bin"), which=lambda _n: "/usr/bin/sing-box", run=fake_run)
        self.assertTrue(result.found)
        self.assertEqual(result.version, "sing-box version 1.13.0")
        self.assertEqual(calls, [["/usr/bin/sing-box", "version"]])

    def test_binary_that_fails_to_run(self):
        def fake_run(cmd, **_kw):
            raise OSError("Exec format error")

        result = verify_installation("sing-box", Path("/usr/bin"), which=lambda _n: "/usr/bin/sing-box", run=fake_run)
        self.assertTrue(result.found)
        self.assertIsNone(result.version)

    def test_nonzero_exit(self):
        def fake_run(cmd, **_kw):
            return subprocess.CompletedProcess(cmd, 2, stdout="", stderr="boom")

        result = verify_installation("sing-box", Path("/usr/bin"), which=lambda _n: "/usr/bin/sing-box", run=fake_run)
        self.assertIsNone(result.version)


if __name__ == "__main__":
    unittest.main()
