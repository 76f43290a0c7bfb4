"""Entry point for ``python -m jetson_llama_build``."""

from jetson_llama_build.cli import app

if __name__ == "__main__":
    app()
