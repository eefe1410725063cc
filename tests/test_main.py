"""!
@brief End-to-end CLI tests for :func:`office_autoinstall.main.main`.
@details External effects (network, child processes, registry, PowerShell)
are replaced with fakes; configuration resolution, logging, and exit code
mapping run for real.
"""
from __future__ import annotations

import json
import logging
import pathlib
import sys
import urllib.error

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from office_autoinstall import exec_utils, logging_ext, main, odt_config, verify  # noqa: E402
from office_autoinstall.errors import ElevationError  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_logging_state() -> None:
    yield
    exec_utils.set_global_timeout(None)
    for name in (logging_ext.HUMAN_LOGGER_NAME, logging_ext.MACHINE_LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        for flt in list(logger.filters):
            logger.removeFilter(flt)
        logger.propagate = True


@pytest.fixture
def sandbox(monkeypatch, tmp_path):
    """!
    @brief Point every default location at ``tmp_path`` and stub external effects.
    """

    temp = tmp_path / "temp"
    temp.mkdir()
    bundle = tmp_path / "oem"
    bundle.mkdir()
    monkeypatch.setenv("TEMP", str(temp))

    commands: list[list[str]] = []

    def fake_run_command(command, *, event, dry_run=False, **kwargs):
        commands.append(list(command))
        if dry_run:
            return exec_utils.CommandResult(list(command), 0, "", "", 0.0, skipped=True)
        if event == "odt_extract":
            work_dir = pathlib.Path(command[1].split(":", 1)[1])
            (work_dir / "setup.exe").write_bytes(b"MZ")
        return exec_utils.CommandResult(list(command), 0, "", "", 0.5)

    def no_network(*args, **kwargs):
        raise urllib.error.URLError("network disabled in tests")

    monkeypatch.setattr(exec_utils, "run_command", fake_run_command)
    monkeypatch.setattr("urllib.request.urlopen", no_network)
    monkeypatch.setattr(main.elevation, "ensure_elevated", lambda argv: True)
    monkeypatch.setattr(
        verify,
        "find_installed_product",
        lambda substring, roots=(): verify.VerificationResult(True, "Microsoft 365 Apps for enterprise - en-us"),
    )
    monkeypatch.setattr(main.pipeline.appx_uninstall, "remove_store_package", lambda name, *, dry_run: [])

    return {
        "temp": temp,
        "bundle": bundle,
        "logs": tmp_path / "logs",
        "args": ["--logdir", str(tmp_path / "logs"), "--bundle-dir", str(bundle)],
        "commands": commands,
    }


def _events(logdir: pathlib.Path) -> list[str]:
    for handler in logging.getLogger(logging_ext.MACHINE_LOGGER_NAME).handlers:
        handler.flush()
    text = (logdir / logging_ext.MACHINE_LOG_FILE).read_text(encoding="utf-8")
    return [json.loads(line)["event"] for line in text.splitlines() if line.strip()]


def _bundle_tool(sandbox) -> pathlib.Path:
    tool = sandbox["bundle"] / "officedeploymenttool.exe"
    tool.write_bytes(b"MZ")
    return tool


def test_parser_accepts_configure_alias() -> None:
    args = main.build_arg_parser().parse_args(["--configure", "custom.xml", "--cleanup"])
    assert args.config == "custom.xml"
    assert args.cleanup is True


def test_write_config_prints_path(tmp_path, capsys) -> None:
    target = tmp_path / "out" / "configuration.xml"

    assert main.main(["--write-config", str(target)]) == main.EXIT_OK

    assert capsys.readouterr().out.strip() == str(target)
    assert target.read_text(encoding="utf-8") == odt_config.DEFAULT_CONFIGURATION_XML


def test_default_run_with_bundled_tool_succeeds(sandbox) -> None:
    tool = _bundle_tool(sandbox)

    code = main.main(sandbox["args"])

    assert code == main.EXIT_OK
    work = sandbox["temp"] / "OfficeInstall"
    assert sandbox["commands"][0] == [str(tool), f"/extract:{work}", "/quiet"]
    assert sandbox["commands"][1] == [str(work / "setup.exe"), "/configure", str(work / "configuration.xml")]
    events = _events(sandbox["logs"])
    assert events[-1] == "run_complete"
    assert "install_complete" in events


def test_missing_config_exits_before_download(sandbox, tmp_path) -> None:
    """!
    @brief A bad ``--config`` path fails with status 1 and starts nothing.
    """

    code = main.main(["--config", str(tmp_path / "missing.xml"), *sandbox["args"]])

    assert code == main.EXIT_FAILURE
    assert sandbox["commands"] == []
    events = _events(sandbox["logs"])
    assert "download_start" not in events
    assert events[-1] == "run_failed"


def test_unreachable_download_exits_with_failure(sandbox) -> None:
    code = main.main(sandbox["args"])

    assert code == main.EXIT_FAILURE
    assert sandbox["commands"] == []


def test_explicit_config_is_passed_to_setup(sandbox, tmp_path) -> None:
    _bundle_tool(sandbox)
    custom = tmp_path / "keep-existing.xml"
    custom.write_text("<Configuration><Add /></Configuration>", encoding="utf-8")

    code = main.main(["--config", str(custom), *sandbox["args"]])

    assert code == main.EXIT_OK
    assert sandbox["commands"][1][-1] == str(custom)
    assert not (sandbox["temp"] / "OfficeInstall" / "configuration.xml").exists()


def test_cleanup_flag_removes_work_directory(sandbox) -> None:
    tool = _bundle_tool(sandbox)

    code = main.main(["--cleanup", *sandbox["args"]])

    assert code == main.EXIT_OK
    assert not (sandbox["temp"] / "OfficeInstall").exists()
    assert tool.exists()


def test_dry_run_changes_nothing(sandbox, monkeypatch) -> None:
    monkeypatch.setattr(
        main.elevation, "ensure_elevated", lambda argv: pytest.fail("dry-run must not request elevation")
    )

    code = main.main(["--dry-run", *sandbox["args"]])

    assert code == main.EXIT_OK
    assert not (sandbox["temp"] / "OfficeInstall").exists()
    assert not (sandbox["temp"] / "officedeploymenttool.exe").exists()


def test_non_elevated_process_hands_off_and_exits_zero(sandbox, monkeypatch) -> None:
    seen: list[list[str]] = []

    def relaunch(argv):
        seen.append(list(argv))
        return False

    monkeypatch.setattr(main.elevation, "ensure_elevated", relaunch)
    argv = ["--cleanup", *sandbox["args"]]

    assert main.main(argv) == main.EXIT_OK
    assert seen == [argv]
    assert sandbox["commands"] == []


def test_refused_elevation_exits_with_failure(sandbox, monkeypatch) -> None:
    def refuse(argv):
        raise ElevationError("Elevation request was denied or cancelled (ShellExecuteW returned 5)")

    monkeypatch.setattr(main.elevation, "ensure_elevated", refuse)

    assert main.main(sandbox["args"]) == main.EXIT_FAILURE
    assert _events(sandbox["logs"])[-1] == "run_failed"


def test_entry_script_delegates_to_package_main(monkeypatch) -> None:
    """!
    @brief The PyInstaller entry script forwards to the package entry point.
    """

    if str(PROJECT_ROOT) not in sys.path:
        monkeypatch.syspath_prepend(str(PROJECT_ROOT))
    import oai_entry

    monkeypatch.setattr(main, "main", lambda: 7)
    assert oai_entry.main() == 7


def test_blocked_work_directory_exits_with_failure(sandbox) -> None:
    """!
    @brief Filesystem errors surface as a failed stage, not a traceback.
    """

    (sandbox["temp"] / "OfficeInstall").write_text("not a directory", encoding="utf-8")

    code = main.main(sandbox["args"])

    assert code == main.EXIT_FAILURE
    events = _events(sandbox["logs"])
    assert "config_failed" in events
    assert events[-1] == "run_failed"
