"""
Command-line interface for gqlschemagen.

Provides the ``generate``, ``init`` and ``show-config`` subcommands with
rich formatted output.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box
from rich.markup import escape

from . import __version__
from .core.config import (
    EXAMPLE_CONFIG,
    ConfigError,
    GeneratorConfig,
    find_config,
    get_config_manager,
    load_config,
)
from .logging_config import setup_logging
from .pipeline import generate_schema
from .watcher import SchemaWatcher, WatchError


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


# Initialize rich console
console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="gqlschemagen",
        description="Generate GraphQL schema files from annotated Go structs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gqlschemagen init
  gqlschemagen generate
  gqlschemagen generate -p ./internal/models -o graph/schema --strategy single
  gqlschemagen generate --watch
  gqlschemagen show-config -c gqlschemagen.yml
        """.strip(),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    generate = subparsers.add_parser("generate", help="Generate schema files")
    _add_config_args(generate)

    input_group = generate.add_argument_group("input and output")
    input_group.add_argument(
        "--package", "-p",
        dest="packages",
        action="append",
        metavar="PATH",
        help="Go package directory, file or pattern (repeatable, supports ** )",
    )
    input_group.add_argument("--output", "-o", metavar="PATH", help="Output directory or file")
    input_group.add_argument(
        "--strategy",
        choices=["single", "multiple", "package"],
        help="Output grouping strategy",
    )
    input_group.add_argument(
        "--skip-existing",
        action="store_true",
        help="Leave existing output files untouched",
    )

    naming_group = generate.add_argument_group("naming")
    naming_group.add_argument(
        "--field-case",
        choices=["camel", "snake", "pascal", "original", "none"],
        help="Case style for field names",
    )
    naming_group.add_argument(
        "--no-json-tag",
        action="store_true",
        help="Don't use json tag names for fields",
    )
    naming_group.add_argument("--strip-prefix", metavar="LIST", help="Comma separated prefixes to strip")
    naming_group.add_argument("--strip-suffix", metavar="LIST", help="Comma separated suffixes to strip")

    gqlgen_group = generate.add_argument_group("gqlgen")
    gqlgen_group.add_argument(
        "--gqlgen-directives",
        action="store_true",
        help="Emit @goModel and @goField directives",
    )

    generate.add_argument(
        "--watch", "-w",
        action="store_true",
        help="Keep running and regenerate when Go sources change",
    )
    generate.add_argument("--verbose", "-v", action="store_true", help="Show details and metadata")
    generate.set_defaults(func=handle_generate)

    init = subparsers.add_parser("init", help="Write a starter configuration file")
    init.add_argument(
        "--output", "-o",
        default="gqlschemagen.yml",
        metavar="FILE",
        help="Configuration file to create (default: gqlschemagen.yml)",
    )
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")
    init.set_defaults(func=handle_init)

    show = subparsers.add_parser("show-config", help="Print the effective configuration")
    _add_config_args(show)
    show.set_defaults(func=handle_show_config)

    return parser


def _add_config_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="YAML or JSON configuration file (default: gqlschemagen.yml in the current directory)",
    )


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Build configuration from the config file and CLI arguments."""
    config_file = getattr(args, "config", None)
    if config_file is None:
        config_file = find_config(Path.cwd())

    overrides: Dict[str, Any] = {}
    if getattr(args, "packages", None):
        overrides["packages"] = args.packages
    if getattr(args, "output", None):
        overrides["output"] = args.output
    if getattr(args, "strategy", None):
        overrides["strategy"] = args.strategy
    if getattr(args, "field_case", None):
        overrides["field_case"] = args.field_case
    if getattr(args, "no_json_tag", False):
        overrides["use_json_tag"] = False
    if getattr(args, "gqlgen_directives", False):
        overrides["use_gqlgen_directives"] = True
    if getattr(args, "strip_prefix", None):
        overrides["strip_prefix"] = args.strip_prefix
    if getattr(args, "strip_suffix", None):
        overrides["strip_suffix"] = args.strip_suffix
    if getattr(args, "skip_existing", False):
        overrides["skip_existing"] = True

    try:
        return load_config(custom_config=overrides, config_file=config_file)
    except ConfigError as e:
        raise CLIError(f"Configuration error: {e}")


def handle_generate(args: argparse.Namespace) -> int:
    """Run schema generation."""
    config = _build_config(args)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[cyan]Generating GraphQL schema...", total=None)
        result = generate_schema(config)
        progress.remove_task(task)

    code = _report(result, args.verbose)
    if not getattr(args, "watch", False):
        return code
    return _watch(config, args.verbose)


def _watch(config: GeneratorConfig, verbose: bool) -> int:
    """Regenerate on source changes until interrupted."""

    def on_result(result, changed: List[str]):
        console.print(f"\n[cyan]↻[/cyan] {len(changed)} file(s) changed, regenerating")
        _report(result, verbose)

    watcher = SchemaWatcher(config, on_result=on_result)
    if not watcher.roots:
        raise CLIError("Nothing to watch: no configured package directory exists")
    console.print(
        f"[cyan]👀 Watching[/cyan] {escape(', '.join(watcher.roots))} [dim](Ctrl+C to stop)[/dim]"
    )
    try:
        watcher.run()
    except WatchError as e:
        raise CLIError(str(e))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching[/dim]")
    return 0


def _report(result, verbose: bool) -> int:
    """Print the outcome of one generation run; returns the exit code."""
    if not result.success:
        console.print(f"[red]✗ Schema generation failed:[/red] {escape(result.error_message)}")
        return 1

    _print_files(result.written, "[green]✓[/green] Wrote")
    _print_files(result.skipped, "[yellow]•[/yellow] Skipped")
    if verbose:
        _print_files(result.unchanged, "[dim]=[/dim] Unchanged")

    if not result.written:
        console.print("[dim]Schema is up to date[/dim]")

    if verbose and result.metadata:
        metadata_table = Table(
            title="📊 Generation Metadata",
            box=box.SIMPLE,
            show_header=True,
            header_style="bold cyan",
        )
        metadata_table.add_column("Property", style="bold")
        metadata_table.add_column("Value", style="green")
        for key, value in result.metadata.items():
            metadata_table.add_row(key.replace("_", " ").title(), str(value))
        console.print()
        console.print(metadata_table)

    if result.warnings:
        console.print("\n[yellow]⚠️  Warnings:[/yellow]")
        for warning in result.warnings:
            console.print(f"  [yellow]•[/yellow] {escape(warning)}")
        console.print()

    return 0


def _print_files(paths: List[str], label: str):
    for path in paths:
        console.print(f"{label} [cyan]{path}[/cyan]")


def handle_init(args: argparse.Namespace) -> int:
    """Write a starter configuration file."""
    path = Path(args.output)
    if path.exists() and not args.force:
        raise CLIError(f"{path} already exists (use --force to overwrite)")

    manager = get_config_manager()
    config = manager.get_config(custom_config=EXAMPLE_CONFIG)
    try:
        manager.save_config(config, path)
    except ConfigError as e:
        raise CLIError(str(e))

    console.print(f"[green]✓[/green] Created configuration [cyan]{path}[/cyan]")
    console.print(
        Panel(
            "[bold]Edit:[/bold] set [cyan]packages[/cyan] to your Go model directories\n"
            "[bold]Run:[/bold] gqlschemagen generate",
            title="💡 Next Steps",
            border_style="blue",
        )
    )
    return 0


def handle_show_config(args: argparse.Namespace) -> int:
    """Print the effective configuration as a table."""
    config = _build_config(args)

    table = Table(title="⚙️  Configuration", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("Setting", style="bold")
    table.add_column("Value", style="green")

    for key, value in vars(config).items():
        if key == "auto_generate":
            for auto_key, auto_value in vars(value).items():
                table.add_row(f"auto_generate.{auto_key}", escape(repr(auto_value)))
        elif key == "custom" and not value:
            continue
        else:
            table.add_row(key, escape(repr(value)))

    console.print(table)

    problems = get_config_manager().validate_config(config)
    for problem in problems:
        console.print(f"[yellow]⚠️  {problem}[/yellow]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        argv: Arguments without the program name (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    setup_logging(logging.INFO if getattr(args, "verbose", False) else logging.WARNING)

    try:
        return args.func(args)
    except CLIError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        return 1
