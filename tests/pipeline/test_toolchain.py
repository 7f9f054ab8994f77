"""Tests for pipeline/toolchain.py - sysroot, llvm tools and demangler resolution."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from cargocov.config.models import CargoCovConfig, RunConfig
from cargocov.core.errors import (
    CommandFailedError,
    ToolInstallError,
    ToolInvocationError,
    ToolNotFoundError,
)
from cargocov.pipeline.toolchain import (
    ToolchainPaths,
    ToolchainResolver,
    attempt_with_recovery,
    find_executable_file,
    first_line,
)


def _make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def sysroot(tmp_path: Path) -> Path:
    root = tmp_path / "toolchains" / "stable-x86_64-unknown-linux-gnu"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def resolver(run_config: RunConfig, config: CargoCovConfig) -> ToolchainResolver:
    return ToolchainResolver(run_config, config.tools)


def _llvm_bin(sysroot: Path) -> Path:
    return sysroot / "lib" / "rustlib" / "x86_64-unknown-linux-gnu" / "bin"


class TestFirstLine:
    """Tests for first_line."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (b"/opt/rust\n", b"/opt/rust"),
            (b"/opt/rust\nwarning: something else\n", b"/opt/rust"),
            (b"/opt/rust\r\n", b"/opt/rust"),
            (b"/opt/rust\rtrailing", b"/opt/rust"),
            (b"/opt/rust", b"/opt/rust"),
            (b"", b""),
        ],
    )
    def test_keeps_text_before_first_terminator(self, raw: bytes, expected: bytes) -> None:
        assert first_line(raw) == expected


class TestAttemptWithRecovery:
    """Tests for the one-shot recovery helper."""

    def test_success_skips_recovery(self) -> None:
        recover = MagicMock()
        assert attempt_with_recovery(lambda: 42, recover, on=ValueError) == 42
        recover.assert_not_called()

    def test_failure_recovers_once_then_retries(self) -> None:
        outcomes: list[Any] = [ValueError("missing"), "ok"]

        def attempt() -> str:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        recover = MagicMock()
        assert attempt_with_recovery(attempt, recover, on=ValueError) == "ok"
        recover.assert_called_once()

    def test_second_failure_propagates(self) -> None:
        recover = MagicMock()
        attempt = MagicMock(side_effect=ValueError("still missing"))

        with pytest.raises(ValueError, match="still missing"):
            attempt_with_recovery(attempt, recover, on=ValueError)

        assert attempt.call_count == 2
        recover.assert_called_once()

    def test_unrelated_error_is_not_recovered(self) -> None:
        recover = MagicMock()

        with pytest.raises(KeyError):
            attempt_with_recovery(MagicMock(side_effect=KeyError("x")), recover, on=ValueError)

        recover.assert_not_called()


class TestFindExecutableFile:
    """Tests for find_executable_file."""

    def test_finds_nested_executable(self, sysroot: Path) -> None:
        expected = _make_executable(_llvm_bin(sysroot) / "llvm-profdata")
        assert find_executable_file(sysroot, "llvm-profdata") == expected

    def test_ignores_non_executable_file(self, sysroot: Path) -> None:
        path = _llvm_bin(sysroot) / "llvm-cov"
        path.parent.mkdir(parents=True)
        path.write_text("not executable")
        path.chmod(0o644)

        with pytest.raises(ToolNotFoundError):
            find_executable_file(sysroot, "llvm-cov")

    def test_ignores_directory_with_matching_name(self, sysroot: Path) -> None:
        (sysroot / "llvm-cov").mkdir()

        with pytest.raises(ToolNotFoundError):
            find_executable_file(sysroot, "llvm-cov")

    def test_missing_raises_with_details(self, sysroot: Path) -> None:
        with pytest.raises(ToolNotFoundError) as exc_info:
            find_executable_file(sysroot, "llvm-profdata")

        assert exc_info.value.details == {"name": "llvm-profdata", "root": str(sysroot)}

    def test_result_is_stable_across_host_dirs(self, sysroot: Path) -> None:
        first = _make_executable(sysroot / "lib" / "a-host" / "bin" / "llvm-cov")
        _make_executable(sysroot / "lib" / "b-host" / "bin" / "llvm-cov")

        assert find_executable_file(sysroot, "llvm-cov") == first


class TestResolveSysRoot:
    """Tests for ToolchainResolver.resolve_sys_root."""

    def test_keeps_only_first_line(self, resolver: ToolchainResolver, completed) -> None:
        output = b"/home/dev/.rustup/toolchains/stable\ninfo: extraneous\n"
        with patch("subprocess.run", return_value=completed(stdout=output)) as mock_run:
            root = resolver.resolve_sys_root()

        assert root == Path("/home/dev/.rustup/toolchains/stable")
        assert mock_run.call_args.args[0] == ["rustc", "--print", "sysroot"]
        assert mock_run.call_args.kwargs["stdout"] == subprocess.PIPE

    def test_runs_in_workspace(
        self, resolver: ToolchainResolver, run_config: RunConfig, completed
    ) -> None:
        with patch("subprocess.run", return_value=completed(stdout=b"/opt\n")) as mock_run:
            resolver.resolve_sys_root()

        assert mock_run.call_args.kwargs["cwd"] == run_config.workspace_dir

    def test_nonzero_exit_raises_invocation_error(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        with (
            patch("subprocess.run", return_value=completed(returncode=1)),
            pytest.raises(ToolInvocationError) as exc_info,
        ):
            resolver.resolve_sys_root()

        assert isinstance(exc_info.value.__cause__, CommandFailedError)

    def test_spawn_failure_raises_invocation_error(self, resolver: ToolchainResolver) -> None:
        with (
            patch("subprocess.run", side_effect=FileNotFoundError(2, "No such file")),
            pytest.raises(ToolInvocationError),
        ):
            resolver.resolve_sys_root()


class TestFindExecutable:
    """Tests for ToolchainResolver.find_executable (install-once retry)."""

    def test_present_tool_triggers_no_install(
        self, resolver: ToolchainResolver, sysroot: Path
    ) -> None:
        expected = _make_executable(_llvm_bin(sysroot) / "llvm-profdata")

        with patch("subprocess.run") as mock_run:
            assert resolver.find_executable(sysroot, "llvm-profdata") == expected

        mock_run.assert_not_called()

    def test_missing_tool_installs_component_and_retries(
        self, resolver: ToolchainResolver, sysroot: Path, completed
    ) -> None:
        target = _llvm_bin(sysroot) / "llvm-profdata"

        def fake_rustup(argv: list[str], **_kwargs: Any) -> subprocess.CompletedProcess[bytes]:
            _make_executable(target)
            return completed()

        with patch("subprocess.run", side_effect=fake_rustup) as mock_run:
            assert resolver.find_executable(sysroot, "llvm-profdata") == target

        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == [
            "rustup",
            "--quiet",
            "component",
            "add",
            "llvm-tools-preview",
        ]

    def test_still_missing_after_install_raises_not_found(
        self, resolver: ToolchainResolver, sysroot: Path, completed
    ) -> None:
        with (
            patch("subprocess.run", return_value=completed()) as mock_run,
            pytest.raises(ToolNotFoundError),
        ):
            resolver.find_executable(sysroot, "llvm-profdata")

        assert mock_run.call_count == 1

    def test_component_installed_at_most_once(
        self, resolver: ToolchainResolver, sysroot: Path, completed
    ) -> None:
        def fake_rustup(argv: list[str], **_kwargs: Any) -> subprocess.CompletedProcess[bytes]:
            _make_executable(_llvm_bin(sysroot) / "llvm-profdata")
            return completed()

        with patch("subprocess.run", side_effect=fake_rustup) as mock_run:
            resolver.find_executable(sysroot, "llvm-profdata")
            with pytest.raises(ToolNotFoundError):
                resolver.find_executable(sysroot, "llvm-cov")

        assert mock_run.call_count == 1

    def test_failed_install_raises_install_error(
        self, resolver: ToolchainResolver, sysroot: Path, completed
    ) -> None:
        with (
            patch("subprocess.run", return_value=completed(returncode=1)),
            pytest.raises(ToolInstallError) as exc_info,
        ):
            resolver.find_executable(sysroot, "llvm-cov")

        assert exc_info.value.details["name"] == "llvm-tools-preview"


class TestEnsureDemangler:
    """Tests for ToolchainResolver.ensure_demangler."""

    def test_present_demangler_only_checks_version(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        with (
            patch("subprocess.run", return_value=completed()) as mock_run,
            patch("shutil.which", return_value="/home/dev/.cargo/bin/rustfilt"),
        ):
            result = resolver.ensure_demangler()

        assert result == "/home/dev/.cargo/bin/rustfilt"
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == ["rustfilt", "--version"]
        assert mock_run.call_args.kwargs["stdout"] == subprocess.DEVNULL

    def test_falls_back_to_name_when_not_on_path(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        with (
            patch("subprocess.run", return_value=completed()),
            patch("shutil.which", return_value=None),
        ):
            assert resolver.ensure_demangler() == "rustfilt"

    def test_missing_demangler_is_installed_then_rechecked(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        side_effects = [FileNotFoundError(2, "No such file"), completed(), completed()]
        with (
            patch("subprocess.run", side_effect=side_effects) as mock_run,
            patch("shutil.which", return_value=None),
        ):
            resolver.ensure_demangler()

        argvs = [c.args[0] for c in mock_run.call_args_list]
        assert argvs == [
            ["rustfilt", "--version"],
            ["cargo", "--quiet", "install", "rustfilt"],
            ["rustfilt", "--version"],
        ]

    def test_persistent_failure_raises_install_error(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        side_effects = [completed(returncode=1), completed(), completed(returncode=1)]
        with (
            patch("subprocess.run", side_effect=side_effects) as mock_run,
            pytest.raises(ToolInstallError),
        ):
            resolver.ensure_demangler()

        assert mock_run.call_count == 3

    def test_failed_install_raises_install_error(
        self, resolver: ToolchainResolver, completed
    ) -> None:
        side_effects = [completed(returncode=1), completed(returncode=101)]
        with (
            patch("subprocess.run", side_effect=side_effects) as mock_run,
            pytest.raises(ToolInstallError) as exc_info,
        ):
            resolver.ensure_demangler()

        assert mock_run.call_count == 2
        assert exc_info.value.details["name"] == "rustfilt"


class TestResolve:
    """Tests for ToolchainResolver.resolve."""

    def test_resolves_all_tools(
        self, resolver: ToolchainResolver, sysroot: Path, completed
    ) -> None:
        profdata = _make_executable(_llvm_bin(sysroot) / "llvm-profdata")
        llvm_cov = _make_executable(_llvm_bin(sysroot) / "llvm-cov")

        def fake_run(argv: list[str], **_kwargs: Any) -> subprocess.CompletedProcess[bytes]:
            if argv[0] == "rustc":
                return completed(stdout=f"{sysroot}\n".encode())
            return completed()

        with (
            patch("subprocess.run", side_effect=fake_run) as mock_run,
            patch("shutil.which", return_value=None),
        ):
            paths = resolver.resolve()

        assert paths == ToolchainPaths(profdata=profdata, llvm_cov=llvm_cov, demangler="rustfilt")
        assert [c.args[0][0] for c in mock_run.call_args_list] == ["rustfilt", "rustc"]
