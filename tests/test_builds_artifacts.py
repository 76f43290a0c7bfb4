"""Tests for builds/artifacts.py module."""

from pathlib import Path

from jetson_llama_build.builds.artifacts import (
    build_dir_name,
    cache_dir_for,
    copy_recipe,
    expected_artifacts,
    verify_build,
)
from jetson_llama_build.builds.runner import ProcessResult

from conftest import FakeRunner


class TestBuildDirName:
    """Tests for build_dir_name function."""

    def test_prefix_plus_token(self):
        assert build_dir_name("orin") == "build-jetson-orin"

    def test_deterministic(self):
        """Same token should always give the same name."""
        assert build_dir_name("xavier-nx") == build_dir_name("xavier-nx")

    def test_aliases_keep_separate_directories(self):
        """Aliases of one family should not share a build tree."""
        assert build_dir_name("orin-nano") != build_dir_name("agx-orin")

    def test_custom_prefix(self):
        assert build_dir_name("tx2", prefix="out-") == "out-tx2"


class TestExpectedArtifacts:
    """Tests for expected_artifacts function."""

    def test_paths(self, tmp_path):
        artifacts = expected_artifacts(tmp_path)
        assert artifacts.llama_lib == tmp_path / "src" / "libllama.so"
        assert artifacts.ggml_libs == tmp_path / "ggml" / "src" / "libggml*.so"


class TestCacheDirFor:
    """Tests for cache_dir_for function."""

    def test_timestamp_name(self, tmp_path):
        assert cache_dir_for(tmp_path, now=1700000000.7) == tmp_path / "1700000000"

    def test_uses_current_time(self, tmp_path):
        cache_dir = cache_dir_for(tmp_path)
        assert cache_dir.parent == tmp_path
        assert cache_dir.name.isdigit()


class TestCopyRecipe:
    """Tests for copy_recipe function."""

    def test_recipe(self):
        lines = copy_recipe(Path("build-jetson-orin"), Path("/cache/123"))
        assert lines == [
            "mkdir -p /cache/123",
            "cp build-jetson-orin/src/libllama.so /cache/123/",
            "cp build-jetson-orin/ggml/src/libggml*.so* /cache/123/",
        ]

    def test_paths_with_spaces_are_quoted(self):
        lines = copy_recipe(Path("my build"), Path("/my cache/1"))
        assert lines[0] == "mkdir -p '/my cache/1'"
        assert lines[2].startswith("cp 'my build/ggml/src'/libggml*.so* ")


class TestVerifyBuild:
    """verify_build is best-effort and never raises."""

    def _make_binary(self, build_dir: Path) -> Path:
        binary = build_dir / "bin" / "llama-cli"
        binary.parent.mkdir(parents=True)
        binary.write_text("")
        return binary

    def test_missing_binary(self, tmp_path, fake_runner):
        assert verify_build(fake_runner, tmp_path) is None
        assert fake_runner.calls == []

    def test_reports_output(self, tmp_path):
        binary = self._make_binary(tmp_path)
        runner = FakeRunner(
            outputs={"llama-cli": ProcessResult(0, "", "version: 4567 (abc1234)\n")}
        )
        assert verify_build(runner, tmp_path) == "version: 4567 (abc1234)"
        assert runner.calls == [[str(binary), "--version"]]

    def test_non_zero_exit(self, tmp_path):
        self._make_binary(tmp_path)
        runner = FakeRunner(outputs={"llama-cli": ProcessResult(1, "oops")})
        assert verify_build(runner, tmp_path) is None

    def test_empty_output(self, tmp_path):
        self._make_binary(tmp_path)
        runner = FakeRunner(outputs={"llama-cli": ProcessResult(0, "  \n")})
        assert verify_build(runner, tmp_path) is None

    def test_spawn_failure(self, tmp_path, fake_runner):
        """A binary that cannot be executed should be tolerated."""
        self._make_binary(tmp_path)
        assert verify_build(fake_runner, tmp_path) is None
