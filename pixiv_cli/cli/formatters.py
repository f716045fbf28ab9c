"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pixiv_cli.models.config import DownloadConfig
from pixiv_cli.models.metadata import IllustrationMetadata
from pixiv_cli.models.stats import DownloadStats
from pixiv_cli.utils.formatting import format_duration, format_size

SENSITIVE_KEYS = ("session_cookie",)


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `pixiv-cli init <PHPSESSID>` to create a configuration file.",
            "• Use `pixiv-cli --show-config` to inspect the current values.",
        ],
        "MetadataUnavailable": [
            "• Check that the artwork id is correct and the work still exists.",
            "• R-18 or private works need a valid PHPSESSID cookie.",
        ],
        "MetadataMalformed": [
            "• Pixiv may have changed its page layout.",
            "• Run the command with -vv for detailed logs.",
        ],
        "NoDownloadableAssets": [
            "• The artwork exposes no image URLs to this session.",
            "• Your session cookie may have expired. Run `pixiv-cli init --force`.",
        ],
        "RemoteRequestFailed": [
            "• Pixiv might be temporarily unavailable or rate limiting you.",
            "• Check your internet connection and try again in a few minutes.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    lines = []
    for key, value in config_data.items():
        if key in SENSITIVE_KEYS and value:
            value = "[hidden]"
        lines.append(f"{key} = {escape(str(value))}")

    console.print(
        Panel(
            "\n".join(lines),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: DownloadConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    if config.range_mode == "custom":
        range_text = f"custom ({config.custom_range_start}-{config.custom_range_end})"
    else:
        range_text = config.range_mode

    table.add_row(
        "Session Cookie:",
        "[green]✓ Set[/green]" if config.session_cookie else "[yellow]✗ Not set[/yellow]",
    )
    table.add_row("Output Directory:", escape(str(Path(config.output_dir).resolve())))
    table.add_row("Root Folder:", escape(config.root_folder_name))
    table.add_row("Range Mode:", range_text)
    table.add_row("Retry:", "✓ Enabled" if config.retry_enabled else "✗ Disabled")
    table.add_row(
        "Anti-theft Suffix:",
        "✓ Enabled" if config.anti_theft_suffix_enabled else "✗ Disabled",
    )
    table.add_row("On Conflict:", config.conflict_policy.value)

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_asset_table(meta: IllustrationMetadata):
    """Lists the resolved assets of an artwork."""
    console = Console()
    table = Table(
        title=f"[bold]{escape(meta.title)}[/bold] by {escape(meta.author)}",
        caption=f"Artwork {meta.illust_id} • {meta.total} assets",
        box=box.ROUNDED,
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Page", justify="right")
    table.add_column("Variant", style="magenta")
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Fallbacks", justify="right", style="green")

    for number, asset in enumerate(meta.assets, 1):
        table.add_row(
            str(number),
            str(asset.page_index + 1),
            asset.variant.value,
            asset.url,
            str(len(asset.fallbacks)),
        )
    console.print(table)


def print_summary_panel(stats: DownloadStats, duration_s: float):
    """Displays the final summary of the download session."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Artworks:", str(len(stats.illusts_processed)))
    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{stats.assets_downloaded}[/bold green]"
    )
    if stats.assets_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.assets_failed}[/bold red]")
    if stats.illusts_failed > 0:
        stats_table.add_row(
            "✗ Artworks Failed:", f"[bold red]{stats.illusts_failed}[/bold red]"
        )
    if stats.illusts_cancelled > 0:
        stats_table.add_row(
            "○ Cancelled:", f"[yellow]{stats.illusts_cancelled}[/yellow]"
        )

    stats_table.add_row("", "")
    stats_table.add_row(
        "Total Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]"
    )
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.assets_failed == 0 and stats.illusts_failed == 0:
        title, border_color = "[bold]✔ Download Complete![/bold]", "green"
    elif stats.assets_downloaded == 0:
        title, border_color = "[bold]✗ Download Failed[/bold]", "red"
    else:
        title, border_color = "[bold]Download Finished With Errors[/bold]", "yellow"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
