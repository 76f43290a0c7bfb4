"""Build directory naming and artifact handoff.

This module handles:
- Deterministic per-device build directory names
- The conventional artifact locations LlamaFarm depends on
- The copy-to-cache recipe printed after a successful build
- Best-effort verification of the built ``llama-cli``
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass
from pathlib import Path

from jetson_llama_build.builds.runner import ProcessRunner

logger = logging.getLogger(__name__)

LIB_DIR_ENV = "LLAMAFARM_LLAMA_LIB_DIR"

# Relative to the build directory
LLAMA_LIB = Path("src") / "libllama.so"
GGML_LIB_DIR = Path("ggml") / "src"
GGML_LIB_GLOB = "libggml*.so"
VERIFY_BINARY = Path("bin") / "llama-cli"


@dataclass
class ArtifactPaths:
    """Expected output locations within a build directory.

    Attributes:
        llama_lib: Exact path of libllama.so.
        ggml_libs: Glob pattern for the ggml libraries.
    """

    llama_lib: Path
    ggml_libs: Path


def build_dir_name(token: str, prefix: str = "build-jetson-") -> str:
    """Return the build directory name for a device token.

    The token is used verbatim, so aliases of the same board family get
    separate build trees.
    """
    return f"{prefix}{token}"


def expected_artifacts(build_dir: Path) -> ArtifactPaths:
    """Return the conventional artifact locations under ``build_dir``."""
    return ArtifactPaths(
        llama_lib=build_dir / LLAMA_LIB,
        ggml_libs=build_dir / GGML_LIB_DIR / GGML_LIB_GLOB,
    )


def cache_dir_for(cache_root: Path, now: float | None = None) -> Path:
    """Return a fresh, time-based cache subdirectory path.

    Args:
        cache_root: LlamaFarm cache root.
        now: Unix timestamp; current time if not given.
    """
    stamp = int(time.time() if now is None else now)
    return cache_root / str(stamp)


def copy_recipe(build_dir: Path, cache_dir: Path) -> list[str]:
    """Render shell commands that copy the libraries into ``cache_dir``.

    The ggml glob is left unquoted so the shell expands it, and also picks
    up versioned variants (``libggml-base.so.0``).
    """
    artifacts = expected_artifacts(build_dir)
    quoted_cache = shlex.quote(str(cache_dir))
    ggml_dir = shlex.quote(str(artifacts.ggml_libs.parent))
    return [
        f"mkdir -p {quoted_cache}",
        f"cp {shlex.quote(str(artifacts.llama_lib))} {quoted_cache}/",
        f"cp {ggml_dir}/{GGML_LIB_GLOB}* {quoted_cache}/",
    ]


def verify_build(runner: ProcessRunner, build_dir: Path) -> str | None:
    """Run ``llama-cli --version`` from the build tree, best-effort.

    Returns:
        Whatever the binary printed, or None if it is missing, fails or
        prints nothing. Never raises.
    """
    binary = build_dir / VERIFY_BINARY
    try:
        if not binary.is_file():
            logger.debug("No verification binary at %s", binary)
            return None
        result = runner.run([str(binary), "--version"], capture=True)
    except Exception as e:
        logger.debug("Verification of %s failed: %s", binary, e)
        return None

    if not result.success:
        logger.debug("%s --version exited with %d", binary, result.exit_code)
        return None
    # llama-cli prints its version banner on stderr
    output = (result.stdout + result.stderr).strip()
    return output or None


__all__ = [
    "GGML_LIB_GLOB",
    "LIB_DIR_ENV",
    "LLAMA_LIB",
    "VERIFY_BINARY",
    "ArtifactPaths",
    "build_dir_name",
    "cache_dir_for",
    "copy_recipe",
    "expected_artifacts",
    "verify_build",
]
