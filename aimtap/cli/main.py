"""
CLI interface for aimtap using Typer.

Commands to generate, remove and inspect aim ratio collections, with Rich
formatting and exit codes per error category.
"""

import sys
from pathlib import Path
from typing import Any

import pydantic
import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from ..config import Settings, get_settings
from ..core import sync
from ..sources.collection import load_collections
from ..utils.exceptions import (
    AimTapError,
    ConfigurationError,
    ErrorCategory,
    ErrorSeverity,
    ValidationError,
)
from ..utils.logging import (
    generate_correlation_id,
    get_logger,
    setup_logging,
)

install_rich_traceback(show_locals=False)

app = typer.Typer(
    name="aimtap",
    help="[bold blue]aimtap[/bold blue] - osu! collections by aim/tapping ratio",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()

_logger = get_logger(__name__)


class ExitCodes:
    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFIGURATION_ERROR = 2
    DATA_ERROR = 3
    WRITE_ERROR = 4
    VALIDATION_ERROR = 5
    USER_INTERRUPTED = 130  # Standard SIGINT exit code


def get_exit_code_for_error(error: BaseException) -> int:
    """Determine appropriate exit code based on error type."""
    if isinstance(error, KeyboardInterrupt):
        return ExitCodes.USER_INTERRUPTED

    if isinstance(error, AimTapError):
        category_to_exit_code = {
            ErrorCategory.CONFIGURATION_ERROR: ExitCodes.CONFIGURATION_ERROR,
            ErrorCategory.DATA_ERROR: ExitCodes.DATA_ERROR,
            ErrorCategory.SYSTEM_ERROR: ExitCodes.WRITE_ERROR,
            ErrorCategory.USER_ERROR: ExitCodes.VALIDATION_ERROR,
        }
        return category_to_exit_code.get(error.category, ExitCodes.GENERAL_ERROR)

    return ExitCodes.GENERAL_ERROR


def get_configured_settings(config_path: Path | None = None) -> Settings:
    """Load settings, optionally from a specific .env file."""
    try:
        if config_path is not None:
            return Settings(_env_file=str(config_path))
        return get_settings()
    except pydantic.ValidationError as e:
        raise ConfigurationError(
            f"Failed to load configuration: {e}",
            config_key="configuration_file" if config_path else "default_settings",
            actual_value=str(config_path) if config_path else "default",
        ) from e


def apply_overrides(settings: Settings, **overrides: Any) -> Settings:
    """Apply command-line overrides to settings, re-validating the result."""
    try:
        return settings.with_overrides(**overrides)
    except pydantic.ValidationError as e:
        error = e.errors()[0]
        field_name = ".".join(str(part) for part in error["loc"])
        raise ValidationError(
            f"Invalid value for {field_name}: {error['msg']}",
            field_name=field_name,
            field_value=error.get("input"),
            validation_rule=error["msg"],
        ) from e


def display_enhanced_error(
    message: str,
    exception: BaseException | None = None,
    show_hints: bool = True,
    show_correlation_id: bool = False,
) -> None:
    """Display an error with its category and troubleshooting hints."""
    console.print(f"[red]✗ Error:[/red] {message}")

    if isinstance(exception, AimTapError):
        console.print(f"[dim red]Details: {escape(exception.user_message)}[/dim red]")
        console.print(
            f"[dim]Category: {exception.category.value.replace('_', ' ').title()}[/dim]"
        )
        if exception.severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]:
            console.print(
                f"[dim red]Severity: {exception.severity.value.upper()}[/dim red]"
            )

        if show_correlation_id and exception.correlation_id:
            console.print(f"[dim]Correlation ID: {exception.correlation_id}[/dim]")

        if show_hints and exception.troubleshooting_hints:
            console.print("\n[bold yellow]💡 Troubleshooting Tips:[/bold yellow]")
            for i, hint in enumerate(exception.troubleshooting_hints, 1):
                console.print(f"  {i}. {hint}")

    elif exception:
        console.print(f"[dim red]Details: {escape(str(exception))}[/dim red]")

        if show_hints:
            console.print("\n[bold yellow]💡 General Troubleshooting:[/bold yellow]")
            console.print("  1. Run again with --verbose for more details")
            console.print("  2. Check the effective settings with 'aimtap config-validate'")


def display_success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def display_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow] {message}")


def display_info(message: str) -> None:
    console.print(f"[blue]i[/blue] {message}")


def display_sync_results(results: dict[str, Any], title: str, verbose: bool = False) -> None:
    """Display sync results as a table, with per-beatmap details when verbose."""
    table = Table(
        title=f"[bold magenta]{title}[/bold magenta]",
        show_header=True,
        header_style="bold magenta",
        border_style="blue",
    )
    table.add_column("Metric", style="cyan", min_width=12)
    table.add_column("Count", justify="right", style="green", min_width=8)

    metrics = [
        ("Beatmaps", results.get("total", 0)),
        ("Candidates", results.get("candidates", 0)),
        ("Classified", results.get("classified", 0)),
        ("Skipped", results.get("skipped", 0)),
        ("Errors", results.get("errors", 0)),
        ("Removed", results.get("removed", 0)),
        ("Added", results.get("added", 0)),
    ]
    for metric, count in metrics:
        if metric == "Errors" and count > 0:
            count_style = "red"
        elif metric == "Skipped" and count > 0:
            count_style = "yellow"
        else:
            count_style = "white"
        table.add_row(metric, f"[{count_style}]{count}[/{count_style}]")

    console.print(table)

    if results.get("collections"):
        collections_table = Table(show_header=True, header_style="bold", border_style="blue")
        collections_table.add_column("Collection", style="cyan")
        collections_table.add_column("Maps", justify="right")
        for collection in results["collections"]:
            collections_table.add_row(escape(collection["name"]), str(collection["size"]))
        console.print(collections_table)

    if results.get("skip_reasons"):
        reasons = ", ".join(
            f"{reason.replace('_', ' ')}: {count}"
            for reason, count in sorted(results["skip_reasons"].items())
        )
        console.print(f"[dim]Skipped by reason - {reasons}[/dim]")

    duration_ms = results.get("performance", {}).get("duration_ms", 0)
    console.print(f"[dim]Finished in {duration_ms / 1000:.1f} seconds[/dim]")

    if verbose and results.get("details"):
        console.print(f"\n[bold]Skipped Beatmaps ({len(results['details'])} items):[/bold]")
        action_colors = {"skipped": "yellow", "error": "red"}
        for detail in results["details"]:
            action = detail.get("action", "unknown")
            color = action_colors.get(action, "white")
            title = escape(str(detail.get("title")))
            console.print(f"  [{color}]{action.title()}[/{color}]: {title}")
            if detail.get("reason"):
                console.print(f"    [dim]Reason: {escape(detail['reason'])}[/dim]")


def handle_cli_exception(
    operation: str,
    exception: BaseException,
    verbose: bool = False,
    correlation_id: str | None = None,
) -> int:
    """Report an exception and return the exit code for it."""
    exit_code = get_exit_code_for_error(exception)

    if isinstance(exception, KeyboardInterrupt):
        display_warning("Operation cancelled by user")
        _logger.info("User interrupted operation", operation=operation)
    elif isinstance(exception, AimTapError):
        exception.correlation_id = exception.correlation_id or correlation_id
        display_enhanced_error(
            f"{operation} failed",
            exception,
            show_hints=True,
            show_correlation_id=verbose,
        )
        _logger.debug(
            f"CLI Error: {operation} failed", error_details=exception.to_dict()
        )
    else:
        display_enhanced_error(f"{operation} failed", exception, show_hints=True)
        _logger.error(f"CLI Error: {operation} failed", error=exception)

    return exit_code


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging and detailed output"
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show errors and critical messages"
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file path (.env)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log format: 'console' or 'json'"
    ),
    log_file: Path | None = typer.Option(
        None, "--log-file", help="Also write log records to this file"
    ),
    correlation_id: str | None = typer.Option(
        None, "--correlation-id", help="Set correlation ID for log tracking"
    ),
):
    """
    [bold blue]aimtap[/bold blue] - sort an osu! library into collections by aim/tapping ratio

    Every osu!standard map is scored at 99% accuracy and grouped by the share
    of aim pp in aim + speed pp. Generated collections are recognised by
    their name prefix and replaced on every run.

    [bold]Examples:[/bold]
        aimtap sync "C:/Games/osu!"
        aimtap sync . --ratio-precision 5 --dry-run
        aimtap status .
    """
    correlation_id = correlation_id or generate_correlation_id()

    try:
        settings = get_configured_settings(config)
    except ConfigurationError as e:
        display_enhanced_error("Configuration error", e, show_hints=True)
        raise typer.Exit(get_exit_code_for_error(e))

    format_type = log_format or settings.log_format
    log_path = log_file or settings.log_file
    setup_logging(
        verbose=verbose,
        quiet=quiet,
        json_logs=format_type == "json",
        log_file=str(log_path) if log_path else None,
        level_name=settings.log_level,
    )
    _logger.with_correlation_id(correlation_id)
    _logger.debug(
        "CLI logging configured",
        verbose=verbose,
        quiet=quiet,
        format_type=format_type,
    )

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["correlation_id"] = correlation_id


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    osu_path: Path = typer.Argument(Path("."), help="Path to the osu! directory"),
    collection_prefix: str | None = typer.Option(
        None, "--collection-prefix", help="The prefix to add to each collection"
    ),
    ratio_precision: float | None = typer.Option(
        None,
        "--ratio-precision",
        help="The multiples of which the aim ratio is grouped by (eg. 5 => 50%, 55%, 60%...)",
    ),
    min_star_rating: float | None = typer.Option(
        None,
        "--min-star-rating",
        help="The minimum no-mod star rating to consider (speeds the run up a lot)",
    ),
    no_star_filter: bool = typer.Option(
        False, "--no-star-filter", help="Classify maps of every star rating"
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-j", help="Threads used for pp calculation"
    ),
    dry_run: bool | None = typer.Option(
        None, "--dry-run", help="Classify without writing collection.db"
    ),
):
    """
    Classify the library and replace the generated collections.

    [bold]Examples:[/bold]
        aimtap sync "C:/Games/osu!"
        aimtap sync . --collection-prefix "aim " --min-star-rating 5
    """
    verbose = ctx.obj["verbose"]
    quiet = ctx.obj["quiet"]
    correlation_id = ctx.obj["correlation_id"]

    try:
        settings = apply_overrides(
            ctx.obj["settings"],
            collection_prefix=collection_prefix,
            ratio_precision=ratio_precision,
            min_star_rating=min_star_rating,
            workers=workers,
            dry_run=dry_run or None,
        )
        if no_star_filter:
            settings = settings.model_copy(update={"min_star_rating": None})

        _logger.info(
            "Starting process",
            osu_path=str(osu_path),
            collection_prefix=settings.collection_prefix,
            ratio_precision=settings.ratio_precision,
            min_star_rating=settings.min_star_rating,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            disable=quiet,
        ) as progress:
            task = progress.add_task("Calculating pp", total=None)

            def on_progress(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            results = sync.sync_library(
                osu_path,
                settings,
                dry_run=settings.dry_run,
                correlation_id=correlation_id,
                progress=on_progress,
            )

    except (Exception, KeyboardInterrupt) as e:
        exit_code = handle_cli_exception("Collection sync", e, verbose, correlation_id)
        raise typer.Exit(exit_code)

    title = "Collection Sync Results"
    if settings.dry_run:
        title += " (Dry Run)"
    display_sync_results(results, title, verbose)

    if results["written"]:
        display_success("Successfully wrote collection.db")
    else:
        display_info("Dry run: collection.db was not modified")


@app.command("clean")
def clean_command(
    ctx: typer.Context,
    osu_path: Path = typer.Argument(Path("."), help="Path to the osu! directory"),
    collection_prefix: str | None = typer.Option(
        None, "--collection-prefix", help="Prefix of the collections to remove"
    ),
    dry_run: bool | None = typer.Option(
        None, "--dry-run", help="List what would be removed without writing"
    ),
):
    """
    Remove every generated collection and leave the rest untouched.
    """
    verbose = ctx.obj["verbose"]
    correlation_id = ctx.obj["correlation_id"]

    try:
        settings = apply_overrides(
            ctx.obj["settings"], collection_prefix=collection_prefix, dry_run=dry_run or None
        )
        result = sync.clean_library(
            osu_path,
            settings.collection_prefix,
            dry_run=settings.dry_run,
            correlation_id=correlation_id,
        )
    except (Exception, KeyboardInterrupt) as e:
        exit_code = handle_cli_exception("Collection clean", e, verbose, correlation_id)
        raise typer.Exit(exit_code)

    for name in result["removed_names"]:
        console.print(f"  [red]-[/red] {escape(name)}")

    if result["written"]:
        display_success(f"Removed {result['removed']} collections")
    elif result["removed"]:
        display_info(f"Dry run: would remove {result['removed']} collections")
    else:
        display_info("No generated collections found")


@app.command("status")
def status_command(
    ctx: typer.Context,
    osu_path: Path = typer.Argument(Path("."), help="Path to the osu! directory"),
    collection_prefix: str | None = typer.Option(
        None, "--collection-prefix", help="Prefix marking generated collections"
    ),
):
    """
    Show the collections in collection.db and which ones aimtap manages.
    """
    verbose = ctx.obj["verbose"]
    correlation_id = ctx.obj["correlation_id"]

    try:
        settings = apply_overrides(ctx.obj["settings"], collection_prefix=collection_prefix)
        paths = sync.validate_library(osu_path)
        collection_list = load_collections(paths.collection)
    except (Exception, KeyboardInterrupt) as e:
        exit_code = handle_cli_exception("Status check", e, verbose, correlation_id)
        raise typer.Exit(exit_code)

    summary = sync.summarize_collections(
        collection_list.collections, settings.collection_prefix
    )

    table = Table(
        title=f"[bold magenta]Collections (version {collection_list.version})[/bold magenta]",
        show_header=True,
        border_style="blue",
    )
    table.add_column("Collection", style="cyan")
    table.add_column("Maps", justify="right")
    table.add_column("Unresolved", justify="right")
    table.add_column("Generated", justify="center")

    for entry in summary:
        table.add_row(
            escape(entry["name"]) if entry["name"] is not None else "[dim]<unnamed>[/dim]",
            str(entry["size"]),
            str(entry["missing"]) if entry["missing"] else "-",
            "✅" if entry["generated"] else "-",
        )

    console.print(table)

    generated = sum(1 for entry in summary if entry["generated"])
    console.print(
        f"\n[dim]Summary: {generated} generated / {len(summary)} total collections[/dim]"
    )


@app.command("config-validate")
def config_validate_command(
    ctx: typer.Context,
    osu_path: Path | None = typer.Argument(
        None, help="Optionally check an osu! directory as well"
    ),
):
    """
    Show the effective settings and check the osu! directory.
    """
    settings: Settings = ctx.obj["settings"]

    table = Table(
        title="[bold magenta]Configuration[/bold magenta]",
        show_header=True,
        border_style="blue",
    )
    table.add_column("Setting", style="cyan", min_width=18)
    table.add_column("Value", style="white")
    table.add_column("Status", justify="center")

    config_items = [
        ("Log Level", settings.log_level, "✅"),
        ("Log Format", settings.log_format, "✅"),
        ("Log File", settings.log_file or "-", "✅"),
        ("Collection Prefix", repr(settings.collection_prefix), "✅"),
        ("Ratio Precision", f"{settings.ratio_precision:g}%", "✅"),
        (
            "Min Star Rating",
            "disabled" if settings.min_star_rating is None else f"{settings.min_star_rating:g}",
            "✅",
        ),
        ("Accuracy", f"{settings.accuracy:g}%", "✅"),
        ("Workers", str(settings.workers), "✅"),
        ("Dry Run Mode", "Yes" if settings.dry_run else "No", "✅"),
    ]

    errors_count = 0
    if osu_path is not None:
        for filename in (sync.LISTING_FILENAME, sync.COLLECTION_FILENAME):
            found = (osu_path / filename).is_file()
            if not found:
                errors_count += 1
            config_items.append(
                (filename, str(osu_path / filename), "✅" if found else "❌")
            )

    for setting, value, status in config_items:
        value_display = f"[red]{value}[/red]" if status == "❌" else value
        table.add_row(setting, value_display, status)

    console.print(table)

    _logger.audit(
        "configuration_validation",
        errors_count=errors_count,
        total_settings=len(config_items),
    )

    if errors_count:
        console.print(f"[red]❌ {errors_count} required database file(s) missing[/red]")
        raise typer.Exit(ExitCodes.CONFIGURATION_ERROR)

    display_success("Configuration is valid")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        display_warning("Operation cancelled by user")
        sys.exit(ExitCodes.USER_INTERRUPTED)
