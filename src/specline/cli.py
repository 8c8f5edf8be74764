from __future__ import annotations

from pathlib import Path

import typer

app = typer.Typer(name="specline", help="Declare, run and report hierarchical test suites")

DEFAULT_CONFIG = "specline.yaml"


@app.command()
def run(
    paths: list[str] = typer.Argument(help="Spec files or directories to run"),
    config: str | None = typer.Option(
        None, "--config", "-c", help=f"Options YAML (defaults to ./{DEFAULT_CONFIG} if present)"
    ),
    stop_on_first_failure: bool | None = typer.Option(
        None,
        "--stop-on-first-failure/--no-stop-on-first-failure",
        help="Skip remaining tests after the first failure",
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", min=0, help="Default per-test timeout in seconds (0 disables)"
    ),
    grep: str | None = typer.Option(None, "--grep", "-g", help="Run only tests whose full name contains TEXT"),
    verbose: bool | None = typer.Option(
        None, "--verbose/--quiet", "-v/-q", help="List every test and log engine activity to stderr"
    ),
    colors: bool | None = typer.Option(None, "--colors/--no-colors", help="Colorize terminal output"),
    junit: str | None = typer.Option(None, "--junit", help="Write a JUnit XML report to this path"),
    debug_log: str | None = typer.Option(None, "--debug-log", help="Write engine debug log to this path"),
):
    """Load spec files, run every declared test and report the results."""
    from specline.config import build_options, load_options
    from specline.engine import Runner
    from specline.errors import ConfigError, DeclarationError
    from specline.loader import load_spec_files
    from specline.reporting import ConsoleReporter, JUnitReporter
    from specline.verbose import setup_logger

    overrides = {
        "stop_on_first_failure": stop_on_first_failure,
        "timeout": timeout,
        "grep": grep,
        "verbose": verbose,
        "colors": colors,
    }

    try:
        if config is not None:
            options = load_options(Path(config), **overrides)
        elif Path(DEFAULT_CONFIG).exists():
            options = load_options(Path(DEFAULT_CONFIG), **overrides)
        else:
            options = build_options({k: v for k, v in overrides.items() if v is not None})
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    logger = setup_logger(
        Path(debug_log) if debug_log else None,
        verbose=options.verbose,
        logger_name="specline",
    )

    try:
        collector = load_spec_files([Path(p) for p in paths], logger=logger)
    except DeclarationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    result = Runner(collector, options, logger=logger).run()

    reporters = [ConsoleReporter(verbose=options.verbose, colors=options.colors)]
    if junit:
        reporters.append(JUnitReporter(Path(junit)))
    for reporter in reporters:
        reporter.report(result)

    if junit:
        typer.echo(f"JUnit report: {junit}")
    if debug_log:
        typer.echo(f"Debug log: {debug_log}")

    if not result.ok:
        raise typer.Exit(1)


@app.command()
def init(
    dir: str = typer.Option(".", "--dir", help="Directory to initialize"),
):
    """Write an example options file and spec file."""
    project_dir = Path(dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    options_file = project_dir / DEFAULT_CONFIG
    if options_file.exists():
        typer.echo(f"{DEFAULT_CONFIG} already exists in {dir}, skipping.")
    else:
        options_file.write_text("""\
# Options for `specline run`
stop_on_first_failure: false
verbose: false
colors: true
timeout: ${SPECLINE_TIMEOUT:-5}
""")
        typer.echo(f"  {DEFAULT_CONFIG}       - run options")

    spec_file = project_dir / "example_spec.py"
    if spec_file.exists():
        typer.echo(f"example_spec.py already exists in {dir}, skipping.")
        return

    spec_file.write_text('''\
from specline import describe, expect, it


def math_suite():
    it("adds", lambda: expect(2 + 2).to_be(4))
    it("compares floats", lambda: expect(0.1 + 0.2).to_be_close_to(0.3, 5))
    it.todo("divides by zero gracefully")


describe("Math", math_suite)
''')
    typer.echo("  example_spec.py    - example suite")


@app.command()
def schema(
    out: str = typer.Option("specline.schema.json", help="Output path for the JSON Schema"),
):
    """Generate a JSON Schema for the options file."""
    from specline.schema import write_json_schema

    out_path = Path(out)
    write_json_schema(out_path)
    typer.echo(f"Wrote schema: {out_path}")


def main() -> None:
    app()
