"""jlbundle check command - Validate a project and show its build plan."""

from __future__ import annotations

import click
from rich.table import Table

from jlbundle_cli import output
from jlbundle_cli.commands.common import load_settings, resolve_context
from jlbundle_cli.errors import handle_bundle_error
from jlbundle_cli.output import print_json, step, success, warning
from jlbundle_core import BundleError, JuliaToolchain


@click.command()
@click.argument("project_dir", nargs=-1, type=click.Path())
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format [default: table]",
)
@click.option(
    "--cpu-target",
    type=str,
    default=None,
    help="cpu_target to record in the plan [default: generic]",
)
def check(project_dir: tuple[str, ...], output_format: str, cpu_target: str | None) -> None:
    """Validate PROJECT_DIR and print the derived build plan.

    Runs the same pre-flight checks as `run` and derives the build
    context, without touching the filesystem.

    Examples:

        jlbundle check ./MyProject

        jlbundle check ./MyProject --format json
    """
    settings = load_settings(cpu_target=cpu_target)
    toolchain = JuliaToolchain(executable=settings.julia_executable)

    try:
        build_ctx = resolve_context(project_dir, settings, toolchain)
    except BundleError as e:
        handle_bundle_error(e)

    if output_format == "json":
        print_json(build_ctx.model_dump(mode="json"))
        return

    table = Table(title=f"Build plan: {build_ctx.project_name or '(unnamed)'}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("project_dir", str(build_ctx.project_dir))
    table.add_row("base_environment", str(build_ctx.base_environment_path))
    table.add_row("apps_dir", str(build_ctx.apps_dir))
    table.add_row("output_dir", str(build_ctx.output_dir))
    table.add_row("targets", ", ".join(build_ctx.targets))
    table.add_row("required_packages", ", ".join(sorted(build_ctx.required_packages)))
    table.add_row("cpu_target", build_ctx.cpu_target)
    for name, override in sorted(build_ctx.package_overrides.items()):
        table.add_row(f"override:{name}", f"{override.url}#{override.rev}")
    output.console.print(table)

    if not build_ctx.manifest_file.is_file():
        warning(f"{build_ctx.manifest_file} does not exist")
    for precompile in build_ctx.precompile_files:
        if not precompile.is_file():
            step(f"No warm-up script at {precompile}")
    success("Project valid")
