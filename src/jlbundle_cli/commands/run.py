"""jlbundle run command - Install dependencies and compile every app."""

from __future__ import annotations

import click

from jlbundle_cli.commands.common import is_verbose, load_settings, resolve_context
from jlbundle_cli.errors import handle_bundle_error
from jlbundle_cli.output import print_report, step, success, warning
from jlbundle_core import BuildPipeline, BundleError, JuliaToolchain


@click.command()
@click.argument("project_dir", nargs=-1, type=click.Path())
@click.option(
    "--deps-only",
    is_flag=True,
    default=False,
    help="Install and refresh dependencies, then stop before compiling.",
)
@click.option(
    "--archive/--no-archive",
    default=False,
    help="Split each compiled app into 100MB chunk archives [default: off]",
)
@click.option(
    "--cpu-target",
    type=str,
    default=None,
    help="cpu_target passed to PackageCompiler [default: generic]",
)
@click.pass_context
def run(
    ctx: click.Context,
    project_dir: tuple[str, ...],
    deps_only: bool,
    archive: bool,
    cpu_target: str | None,
) -> None:
    """Build standalone bundles for every file under PROJECT_DIR/apps.

    Checks the Julia installation, resets PROJECT_DIR/build, installs
    PackageCompiler and the project dependencies, then compiles each
    app into PROJECT_DIR/build/<app>.

    Examples:

        jlbundle run ./MyProject

        jlbundle run ./MyProject --deps-only

        jlbundle run ./MyProject --archive --cpu-target native
    """
    settings = load_settings(cpu_target=cpu_target)
    toolchain = JuliaToolchain(executable=settings.julia_executable)

    try:
        build_ctx = resolve_context(project_dir, settings, toolchain)
        step("Pre-checks complete.")
        step(f"Building {build_ctx.project_name}: {', '.join(build_ctx.targets) or 'no apps found'}")
        if not build_ctx.targets:
            warning(f"No apps found in {build_ctx.apps_dir}")

        pipeline = BuildPipeline(build_ctx, toolchain, settings, stream=True)
        report = pipeline.run(deps_only=deps_only, archive=archive)
    except BundleError as e:
        handle_bundle_error(e)

    print_report(report)
    if is_verbose(ctx):
        step(f"Total duration: {report.total_duration_ms}ms")

    if deps_only:
        success("Dependencies ready (--deps-only, build skipped)")
    else:
        success(f"Build complete. Output in {build_ctx.output_dir}")
