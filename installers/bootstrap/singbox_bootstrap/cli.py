"""CLI installer that resolves, downloads and installs the sing-box release binary."""

from __future__ import annotations

import argparse
import json
import signal
import sys

from singbox_core.config import load_config, redacted
from singbox_core.logging_setup import configure_logging, install_crash_hooks

from .errors import ArgumentError, InstallerError, PrivilegeError
from .privileges import require_elevated
from .service import install_release

BANNER = "========================================"


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise ArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="singbox-install", description="reF1nd sing-box installer")
    parser.add_argument(
        "--version",
        dest="version",
        default=None,
        metavar="VERSION",
        help="Install specific version (e.g., 1.13.0-alpha.27.reF1nd)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.version is not None and not args.version.strip():
        raise ArgumentError("argument --version: expected a non-empty version")
    return args


def _raise_on_signal(signum, _frame) -> None:
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    """Turn termination signals into SystemExit so scoped temp dirs unwind."""
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, _raise_on_signal)


def _print_banner() -> None:
    print(BANNER)
    print("  reF1nd sing-box Installer")
    print(BANNER)
    print("")


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except ArgumentError as exc:
        build_parser().print_usage(sys.stderr)
        print(f"error: {exc.message}", file=sys.stderr)
        return exc.exit_code
    except SystemExit as exc:
        # --help
        return int(exc.code or 0)

    # Root check comes before config, log files or any other disk access.
    try:
        require_elevated()
    except PrivilegeError as exc:
        print(f"[ERROR] {exc.message}", file=sys.stderr)
        return exc.exit_code

    cfg = load_config()
    log = configure_logging(
        log_file=cfg.logging.log_file,
        keep_files=cfg.logging.keep_files,
        verbose=cfg.logging.verbose,
    )
    install_crash_hooks()
    install_signal_handlers()
    log.debug(f"config {json.dumps(redacted(cfg), sort_keys=True)}", extra={"event": "config_loaded"})

    _print_banner()
    try:
        result = install_release(cfg, pinned_version=args.version)
    except InstallerError as exc:
        log.error(exc.message, extra={"event": type(exc).__name__})
        if exc.hint:
            log.warning(exc.hint)
        return exc.exit_code
    except KeyboardInterrupt:
        log.warning("Installation cancelled by user.", extra={"event": "cancelled"})
        return 130

    print("")
    log.info(
        f"Done! Run '{cfg.install.binary_name} version' to verify.",
        extra={"event": "done", "version": result.version},
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
