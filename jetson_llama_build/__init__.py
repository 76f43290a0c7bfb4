"""Jetson llama.cpp build tooling.

This package configures and drives CMake to build llama.cpp / ggml with
CUDA support tuned for NVIDIA Jetson boards, and prints how to hand the
resulting shared libraries to LlamaFarm.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
