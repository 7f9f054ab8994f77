"""Toolchain resolution: sysroot lookup, llvm tools and the demangler.

Missing tools are installed on demand, at most once each:
- llvm-profdata / llvm-cov come from a rustup component under the sysroot
- the demangler is a cargo-installable binary expected on PATH
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

import structlog

from cargocov.config.models import RunConfig, ToolsConfig
from cargocov.core.errors import (
    CommandFailedError,
    ToolInstallError,
    ToolInvocationError,
    ToolNotFoundError,
)
from cargocov.pipeline.process import run_cmd

log = structlog.get_logger(__name__)

T = TypeVar("T")

_LINE_BREAK = re.compile(rb"[\r\n]")


@dataclass(frozen=True)
class ToolchainPaths:
    """Resolved external executables for one run."""

    profdata: Path
    llvm_cov: Path
    demangler: str


def attempt_with_recovery(
    attempt: Callable[[], T],
    recover: Callable[[], None],
    *,
    on: type[Exception] | tuple[type[Exception], ...],
) -> T:
    """Run attempt; on the given failure run recover once and try again.

    The second failure propagates unchanged. Errors raised by recover
    propagate as well.
    """
    try:
        return attempt()
    except on as e:
        log.debug("attempt_failed_recovering", error=str(e))
    recover()
    return attempt()


def first_line(raw: bytes) -> bytes:
    """Keep everything before the first line terminator."""
    return _LINE_BREAK.split(raw, maxsplit=1)[0]


def find_executable_file(root: Path, name: str) -> Path:
    """Find an executable file called name anywhere below root.

    Directories are walked in sorted order so the result is stable when
    several host toolchains ship the same binary.

    Raises:
        ToolNotFoundError: If no executable match exists.
    """
    names = {name, f"{name}.exe"} if os.name == "nt" else {name}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if filename not in names:
                continue
            candidate = Path(dirpath) / filename
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate
    raise ToolNotFoundError.not_found(name, root)


class ToolchainResolver:
    """Locates (and if needed installs) the coverage toolchain."""

    def __init__(self, run_config: RunConfig, tools: ToolsConfig) -> None:
        self._run_config = run_config
        self._tools = tools
        self._component_installed = False

    def resolve(self) -> ToolchainPaths:
        demangler = self.ensure_demangler()
        sys_root = self.resolve_sys_root()
        profdata = self.find_executable(sys_root, self._tools.profdata)
        llvm_cov = self.find_executable(sys_root, self._tools.llvm_cov)
        paths = ToolchainPaths(profdata=profdata, llvm_cov=llvm_cov, demangler=demangler)
        log.debug(
            "toolchain_resolved",
            profdata=str(profdata),
            llvm_cov=str(llvm_cov),
            demangler=demangler,
        )
        return paths

    def resolve_sys_root(self) -> Path:
        """Ask the compiler for its sysroot, keeping only the first output line.

        Raises:
            ToolInvocationError: If the compiler cannot run or exits non-zero.
        """
        name = f"{self._tools.rustc} --print sysroot"
        try:
            result = run_cmd(
                [self._tools.rustc, "--print", "sysroot"],
                "rustc",
                cwd=self._run_config.workspace_dir,
                stdout=subprocess.PIPE,
            )
        except CommandFailedError as e:
            raise ToolInvocationError.failed(name, e.message) from e
        return Path(os.fsdecode(first_line(result.stdout or b"")))

    def find_executable(self, root: Path, name: str) -> Path:
        """Find name under root, installing the llvm tools component once if missing."""
        return attempt_with_recovery(
            lambda: find_executable_file(root, name),
            self._install_llvm_component,
            on=ToolNotFoundError,
        )

    def ensure_demangler(self) -> str:
        """Check the demangler runs, installing it with cargo on first failure.

        Raises:
            ToolInstallError: If the demangler still cannot run after installing.
        """
        demangler = self._tools.demangler

        def check() -> None:
            run_cmd([demangler, "--version"], "demangler", stdout=subprocess.DEVNULL)

        try:
            attempt_with_recovery(check, self._install_demangler, on=CommandFailedError)
        except CommandFailedError as e:
            raise ToolInstallError.install_failed(demangler, e.message) from e
        return shutil.which(demangler) or demangler

    def _install_llvm_component(self) -> None:
        if self._component_installed:
            return
        component = self._tools.llvm_component
        log.info("toolchain_component_install", component=component)
        try:
            run_cmd(
                [self._tools.rustup, "--quiet", "component", "add", component],
                "rustup",
                cwd=self._run_config.workspace_dir,
            )
        except CommandFailedError as e:
            raise ToolInstallError.install_failed(component, e.message) from e
        self._component_installed = True

    def _install_demangler(self) -> None:
        crate = self._tools.demangler_crate
        log.info("toolchain_demangler_install", crate=crate)
        try:
            run_cmd(
                [self._tools.cargo, "--quiet", "install", crate],
                "cargo-install",
                cwd=self._run_config.workspace_dir,
            )
        except CommandFailedError as e:
            raise ToolInstallError.install_failed(crate, e.message) from e
