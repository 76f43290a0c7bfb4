"""Thin CLI wrapper for jetson_llama_build.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.

Two entry points are exposed:
- ``jetson-llama-build``: multi-command app (build, devices, config)
- ``build-jetson``: the single ``build [DEVICE]`` command on its own
"""

import logging
import shlex
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from jetson_llama_build import __version__
from jetson_llama_build.builds.artifacts import (
    LIB_DIR_ENV,
    cache_dir_for,
    copy_recipe,
    verify_build,
)
from jetson_llama_build.builds.runner import (
    PROTECTED_DEFINITIONS,
    ProcessRunner,
    SubprocessRunner,
)
from jetson_llama_build.builds.service import (
    BuildOutcome,
    BuildPlan,
    plan_build,
    run_build,
)
from jetson_llama_build.config import Settings, get_settings, print_settings_json
from jetson_llama_build.devices import DEFAULT_DEVICE, JetsonDevice
from jetson_llama_build.errors import (
    ExternalProcessError,
    MissingDependencyError,
    UnknownDeviceError,
)

app = typer.Typer(
    name="jetson-llama-build",
    help="Jetson llama.cpp builder - compile llama.cpp with CUDA for NVIDIA Jetson",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

EXIT_INTERRUPTED = 130


def setup_logging(level: str) -> None:
    """Route log records to stderr through Rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def get_runner(json_output: bool = False) -> ProcessRunner:
    """Return the process runner used by build commands."""
    # Keep stdout clean for the JSON document
    return SubprocessRunner(stdout_to_stderr=json_output)


def version_callback(value: bool) -> None:
    """Handle the eager --version flag."""
    if value:
        _print_line(f"jetson-llama-build {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Jetson llama.cpp builder - compile llama.cpp with CUDA for NVIDIA Jetson."""


def _parse_definitions(values: list[str] | None) -> dict[str, str]:
    """Parse repeated KEY=VALUE options into a mapping."""
    definitions: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(
                f"expected KEY=VALUE, got '{item}'", param_hint="--define"
            )
        if key in PROTECTED_DEFINITIONS:
            raise typer.BadParameter(
                f"{key} is fixed for Jetson builds and cannot be overridden",
                param_hint="--define",
            )
        definitions[key] = value
    return definitions


def _print_line(text: str) -> None:
    """Print literal text without markup or wrapping."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def _print_error(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]", highlight=False, soft_wrap=True)


def _print_plan(plan: BuildPlan) -> None:
    console.print("[bold]Build plan:[/bold]")
    _print_line(f"  Device:        {plan.token}")
    _print_line(f"  Profile:       {plan.profile.display_name}")
    _print_line(f"  Architecture:  SM {plan.profile.cuda_architecture}")
    _print_line(f"  Source dir:    {plan.source_dir}")
    _print_line(f"  Build dir:     {plan.build_dir}")
    _print_line(f"  Jobs:          {plan.jobs}")
    console.print()
    console.print("[bold]Commands:[/bold]")
    _print_line("  " + shlex.join(plan.configure_command))
    _print_line("  " + shlex.join(plan.build_command))


def _print_report(outcome: BuildOutcome, settings: Settings) -> None:
    """Print artifact locations and the LlamaFarm copy recipe."""
    build_dir = outcome.plan.build_dir
    console.print()
    console.rule("[bold green]Build complete![/bold green]")
    console.print()
    _print_line(f"Libraries built in: {build_dir}/")
    console.print()
    console.print("[bold]Key files:[/bold]")
    _print_line(f"  {outcome.artifacts.llama_lib}")
    _print_line(f"  {outcome.artifacts.ggml_libs}")
    console.print()
    console.print("To use with LlamaFarm, copy libraries to cache:")
    console.print()
    cache_dir = cache_dir_for(settings.cache_root)
    for line in copy_recipe(build_dir, cache_dir):
        _print_line(f"  {line}")
    console.print()
    _print_line(f"Then set {LIB_DIR_ENV} to point to the cache directory:")
    _print_line(f"  export {LIB_DIR_ENV}={cache_dir}")
    console.print()


def build(
    device: Annotated[
        str,
        typer.Argument(help="Jetson device (see `devices` for all aliases)"),
    ] = DEFAULT_DEVICE,
    source_dir: Annotated[
        Path | None,
        typer.Option("--source-dir", "-S", help="llama.cpp source checkout"),
    ] = None,
    jobs: Annotated[
        int | None,
        typer.Option("--jobs", "-j", min=1, help="Parallel build jobs"),
    ] = None,
    defines: Annotated[
        list[str] | None,
        typer.Option(
            "--define", "-D", help="Extra CMake cache entry KEY=VALUE (repeatable)"
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show the plan without running cmake"),
    ] = False,
    skip_verify: Annotated[
        bool,
        typer.Option("--skip-verify", help="Skip running llama-cli --version"),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build llama.cpp with CUDA for a Jetson device (default: orin)."""
    settings = get_settings()
    setup_logging(settings.log_level)
    extra_definitions = _parse_definitions(defines)

    try:
        plan = plan_build(
            settings,
            device,
            source_dir=source_dir,
            jobs=jobs,
            extra_definitions=extra_definitions,
        )
    except UnknownDeviceError as e:
        if json_output:
            console.print_json(data=e.to_dict())
        else:
            _print_error(str(e))
            _print_line(f"Supported: {', '.join(e.supported)}")
        raise typer.Exit(code=e.exit_code) from None

    if dry_run:
        if json_output:
            console.print_json(data=plan.to_dict())
        else:
            _print_plan(plan)
        return

    if not json_output:
        console.rule(
            f"[bold]Building llama.cpp for {plan.profile.display_name} "
            f"(SM {plan.profile.cuda_architecture})[/bold]"
        )
        console.print()

    runner = get_runner(json_output)
    verification: str | None = None
    try:
        outcome = run_build(plan, runner, settings)
        if not skip_verify:
            verification = verify_build(runner, plan.build_dir)
    except MissingDependencyError as e:
        if json_output:
            console.print_json(data=e.to_dict())
        else:
            _print_error(f"ERROR: {e}")
        raise typer.Exit(code=e.exit_code) from None
    except ExternalProcessError as e:
        if json_output:
            console.print_json(data=e.to_dict())
        else:
            _print_error(f"ERROR: {e}")
        raise typer.Exit(code=e.exit_code) from None
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    if json_output:
        data = outcome.to_dict()
        data["verification"] = verification
        console.print_json(data=data)
        return

    _print_report(outcome, settings)
    if verification:
        console.print("[bold]Verifying build...[/bold]")
        _print_line(verification)


app.command("build")(build)

# Standalone entry point: `build-jetson [DEVICE]`
build_app = typer.Typer(
    name="build-jetson",
    help="Build llama.cpp with CUDA for a Jetson device",
    add_completion=False,
)
build_app.command()(build)


@app.command()
def devices(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List supported Jetson devices and their CUDA architectures."""
    if json_output:
        output = [
            {
                "name": d.profile.name,
                "aliases": list(d.profile.aliases),
                "cuda_architecture": d.profile.cuda_architecture,
                "display_name": d.profile.display_name,
            }
            for d in JetsonDevice
        ]
        console.print_json(data=output)
        return

    console.print("[bold]Supported devices:[/bold]")
    console.print()
    for d in JetsonDevice:
        console.print(
            f"  [green]{d.profile.name}[/green] - {d.profile.display_name} "
            f"(SM {d.profile.cuda_architecture})"
        )
        _print_line(f"    Aliases: {', '.join(d.profile.aliases)}")


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        _print_line(print_settings_json(settings))
        return

    sections = {
        "Paths": [
            ("Source directory", settings.source_dir),
            ("Work directory", settings.work_dir),
            ("Build dir prefix", settings.build_dir_prefix),
            ("Cache root", settings.cache_root),
        ],
        "Tools": [("nvcc", settings.nvcc), ("cmake", settings.cmake)],
        "Build": [
            ("Jobs", settings.jobs or "(host CPU count)"),
            ("Log level", settings.log_level),
        ],
    }
    console.print("[bold]Effective Configuration:[/bold]")
    for title, rows in sections.items():
        console.print()
        console.print(f"[bold]{title}:[/bold]")
        for label, value in rows:
            _print_line(f"  {label + ':':<20} {value}")


if __name__ == "__main__":
    app()
