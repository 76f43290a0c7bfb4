"""Shared fixtures for jetson_llama_build tests."""

import os
from collections.abc import Sequence
from pathlib import Path

import pytest

from jetson_llama_build.builds.runner import ProcessResult
from jetson_llama_build.config import Settings

NVCC_VERSION_OUTPUT = """\
nvcc: NVIDIA (R) Cuda compiler driver
Copyright (c) 2005-2023 NVIDIA Corporation
Built on Tue_Aug_15_22:08:11_PDT_2023
Cuda compilation tools, release 12.2, V12.2.140
Build cuda_12.2.r12.2/compiler.33191640_0
"""

CMAKE_VERSION_OUTPUT = """\
cmake version 3.28.3

CMake suite maintained and supported by Kitware (kitware.com/cmake).
"""


class FakeRunner:
    """ProcessRunner that records calls and returns scripted results.

    Attributes:
        calls: Every command passed to run(), in order.
        which_calls: Every name passed to which(), in order.
    """

    def __init__(
        self,
        tools: Sequence[str] = ("nvcc", "cmake"),
        configure_exit: int = 0,
        build_exit: int = 0,
        outputs: dict[str, ProcessResult] | None = None,
    ) -> None:
        self.available = set(tools)
        self.configure_exit = configure_exit
        self.build_exit = build_exit
        self.outputs = {
            "nvcc": ProcessResult(0, NVCC_VERSION_OUTPUT),
            "cmake": ProcessResult(0, CMAKE_VERSION_OUTPUT),
        }
        if outputs:
            self.outputs.update(outputs)
        self.calls: list[list[str]] = []
        self.which_calls: list[str] = []

    def which(self, name: str) -> str | None:
        self.which_calls.append(name)
        if name in self.available:
            return f"/usr/bin/{name}"
        return None

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        capture: bool = False,
    ) -> ProcessResult:
        cmd = list(command)
        self.calls.append(cmd)
        if "--version" in cmd:
            result = self.outputs.get(Path(cmd[0]).name)
            if result is None:
                raise FileNotFoundError(cmd[0])
            return result
        if "--build" in cmd:
            return ProcessResult(self.build_exit)
        if "-B" in cmd:
            return ProcessResult(self.configure_exit)
        raise AssertionError(f"Unexpected command: {cmd}")

    @property
    def configure_calls(self) -> list[list[str]]:
        return [c for c in self.calls if "-B" in c]

    @property
    def build_calls(self) -> list[list[str]]:
        return [c for c in self.calls if "--build" in c]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Run each test from an empty directory with no JETSON_BUILD_ overrides."""
    for key in list(os.environ):
        if key.startswith("JETSON_BUILD_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """A runner with nvcc and cmake available and every step succeeding."""
    return FakeRunner()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings rooted in the test's temporary directory."""
    return Settings(
        source_dir=tmp_path / "llama.cpp",
        work_dir=tmp_path,
        cache_root=tmp_path / "cache",
    )
