import signal
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "installers" / "bootstrap"))

import pytest

from singbox_bootstrap import cli, privileges
from singbox_bootstrap.errors import PrivilegeError


def test_root_is_elevated(monkeypatch) -> None:
    monkeypatch.setattr(privileges.os, "geteuid", lambda: 0, raising=False)
    assert privileges.is_elevated("Linux")
    privileges.require_elevated("Linux")


def test_regular_user_is_rejected(monkeypatch) -> None:
    monkeypatch.setattr(privileges.os, "geteuid", lambda: 1000, raising=False)
    assert not privileges.is_elevated("Darwin")
    with pytest.raises(PrivilegeError) as exc:
        privileges.require_elevated("Darwin")
    assert exc.value.exit_code == 1


def test_windows_uses_admin_check(monkeypatch) -> None:
    monkeypatch.setattr(privileges, "_windows_is_admin", lambda: True)
    assert privileges.is_elevated("Windows")


def test_termination_signal_becomes_system_exit() -> None:
    with pytest.raises(SystemExit) as exc:
        cli._raise_on_signal(signal.SIGTERM, None)
    assert exc.value.code == 128 + signal.SIGTERM
