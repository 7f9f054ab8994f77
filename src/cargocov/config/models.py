"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CARGOCOV__SECTION__KEY)
3. Workspace YAML (.cargocov/config.yaml)
4. Global YAML (~/.config/cargocov/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CARGOCOV__<SECTION>__<KEY>=<VALUE>

Examples:
    CARGOCOV__LOGGING__LEVEL=DEBUG
    CARGOCOV__PATHS__COVERAGE_DIR=build/coverage
    CARGOCOV__TOOLS__DEMANGLER=rustfilt
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CARGOCOV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. INFO logs stage transitions, DEBUG every spawned command line.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class PathsConfig(BaseModel):
    """Output locations, relative to the workspace root unless absolute.

    Env vars:
        CARGOCOV__PATHS__COVERAGE_DIR: Coverage output directory
        CARGOCOV__PATHS__PROFDATA: Merged profile path
        CARGOCOV__PATHS__STYLE_PATCH: Patch applied to the HTML report
    """

    coverage_dir: str = Field(
        default="target/coverage",
        description="Directory receiving raw profiles, the merged profile and both reports. "
        "Also used as cargo's --target-dir so instrumented builds never mix with normal ones.",
    )
    profdata: str | None = Field(
        default=None,
        description="Merged profile path. Default: <coverage_dir>/coverage.profdata.",
    )
    style_patch: str | None = Field(
        default="coverage-style.css.patch",
        description="Patch applied inside coverage_dir after HTML export. "
        "Set to null to skip patching.",
    )
    lcov_file: str = Field(
        default="lcov.info",
        description="LCOV report file name inside coverage_dir.",
    )

    @field_validator("coverage_dir", "lcov_file")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Path must not be empty")
        return v


class ToolsConfig(BaseModel):
    """External executable names.

    Env vars:
        CARGOCOV__TOOLS__CARGO: Build/test orchestration tool
        CARGOCOV__TOOLS__RUSTC: Compiler used to locate the sysroot
        CARGOCOV__TOOLS__DEMANGLER: Symbol demangler passed to llvm-cov
    """

    rustc: str = "rustc"
    cargo: str = "cargo"
    rustup: str = "rustup"
    patch: str = "patch"
    demangler: str = Field(
        default="rustfilt",
        description="Demangler executable. Installed with 'cargo install <demangler_crate>' if missing.",
    )
    demangler_crate: str = "rustfilt"
    profdata: str = "llvm-profdata"
    llvm_cov: str = "llvm-cov"
    llvm_component: str = Field(
        default="llvm-tools-preview",
        description="rustup component providing llvm-profdata and llvm-cov.",
    )


class BuildConfig(BaseModel):
    """Instrumented build and test-run configuration.

    Env vars:
        CARGOCOV__BUILD__RUST_FLAGS: Flags for RUSTFLAGS and RUSTDOCFLAGS
        CARGOCOV__BUILD__PROFILE_TEMPLATE: Raw profile file name template
    """

    cargo_args: list[str] = Field(
        default_factory=lambda: ["--workspace", "--tests"],
        description="Package/target selectors shared by the build and test-run stages.",
    )
    rust_flags: str = Field(
        default="-Cinstrument-coverage -Clink-dead-code",
        description="Instrumentation flags exported as RUSTFLAGS and RUSTDOCFLAGS.",
    )
    profile_template: str = Field(
        default="%p-%m.profraw",
        description="LLVM_PROFILE_FILE name inside coverage_dir. "
        "%p expands to the process id, %m to the binary signature.",
    )
    ignore_filename_regex: list[str] = Field(
        default_factory=lambda: [r"/\.cargo/registry/", r"/rustc/", r"/tests\.rs$"],
        description="Source paths excluded from both reports. "
        "The coverage directory itself is always excluded.",
    )
    html: bool = Field(
        default=True,
        description="Render the browsable HTML report after the LCOV report.",
    )

    @field_validator("profile_template")
    @classmethod
    def validate_profile_template(cls, v: str) -> str:
        if not v.endswith(".profraw"):
            raise ValueError(f"Profile template must end with .profraw: {v}")
        if "/" in v:
            raise ValueError(f"Profile template must be a file name, not a path: {v}")
        return v


class CargoCovConfig(BaseModel):
    """Root configuration for cargocov."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)


@dataclass(frozen=True)
class RunConfig:
    """Absolute paths for one pipeline run."""

    workspace_dir: Path
    coverage_dir: Path
    coverage_profdata: Path
    lcov_path: Path
    style_patch: Path | None

    @classmethod
    def from_config(cls, workspace_dir: Path, config: CargoCovConfig) -> RunConfig:
        workspace_dir = workspace_dir.resolve()
        coverage_dir = _resolve(workspace_dir, config.paths.coverage_dir)
        if config.paths.profdata:
            profdata = _resolve(workspace_dir, config.paths.profdata)
        else:
            profdata = coverage_dir / "coverage.profdata"
        style_patch = (
            _resolve(workspace_dir, config.paths.style_patch) if config.paths.style_patch else None
        )
        return cls(
            workspace_dir=workspace_dir,
            coverage_dir=coverage_dir,
            coverage_profdata=profdata,
            lcov_path=coverage_dir / config.paths.lcov_file,
            style_patch=style_patch,
        )


def _resolve(base: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else base / path
