"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from pixiv_cli import __version__
from pixiv_cli.api.client import PixivAPIClient
from pixiv_cli.core.download_manager import DownloadManager
from pixiv_cli.core.resolver import MetadataResolver
from pixiv_cli.exceptions import PixivCliError
from pixiv_cli.media.downloader import close_connection_pool
from pixiv_cli.models.config import MAX_RANGE_BOUND, DownloadConfig
from pixiv_cli.models.metadata import SelectionMode
from pixiv_cli.storage.config_manager import ConfigManager
from pixiv_cli.utils.path import parse_pixiv_url

from .formatters import (
    format_error_with_suggestions,
    print_asset_table,
    print_config,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager
from .prompt import InvalidRangeAnswer, RichRangePrompt, parse_range_answer

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("pixiv_cli")

app = typer.Typer(
    name="pixiv-cli",
    help=(
        "Download every image of a Pixiv artwork in its best available quality."
        " Use 'pixiv-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "pixiv-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Pixiv Downloader CLI"""
    if version:
        console.print(f"[bold]pixiv-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    if verbose >= 2:
        log.setLevel("DEBUG")
    elif verbose == 1:
        log.setLevel("INFO")

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]pixiv-cli init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = ConfigManager(CONFIG_FILE).load_config()
        print_config(
            CONFIG_FILE, config.model_dump(mode="json", include=DownloadConfig.get_ini_keys())
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    session_cookie: str = typer.Argument(
        ..., help="The value of your PHPSESSID cookie on pixiv.net.", metavar="<PHPSESSID>"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with a Pixiv session cookie."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config({"session_cookie": session_cookie.strip()})
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to download! Try: [cyan]pixiv-cli download <URL>[/cyan]")


def _read_urls_from_stdin() -> list[str]:
    """Reads URLs from stdin, one per line."""
    if sys.stdin.isatty():
        console.print(
            "[yellow]⚠️  No input detected on stdin. Please pipe URLs or redirect"
            " a file.[/yellow]"
        )
        raise typer.Exit(code=1)

    urls = [
        line.strip()
        for line in sys.stdin
        if line.strip() and not line.strip().startswith("#")
    ]
    if not urls:
        console.print("[yellow]⚠️  No valid URLs found in stdin.[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Read {len(urls)} URLs from stdin.[/green]")
    return urls


def _range_options(range_text: str | None, all_pages: bool, prompt: bool) -> dict:
    """Maps the mutually exclusive range flags onto config overrides."""
    if sum(bool(flag) for flag in (range_text, all_pages, prompt)) > 1:
        console.print("[red]✗ Use only one of --range, --all and --prompt.[/red]")
        raise typer.Exit(code=1)
    if all_pages:
        return {"range_mode": "all"}
    if prompt:
        return {"range_mode": "prompt"}
    if range_text is None:
        return {}

    try:
        selection = parse_range_answer(range_text, None)
    except InvalidRangeAnswer:
        selection = None
    if selection is None:
        console.print(f"[red]✗ Invalid range '{range_text}'. Use A-B, e.g. 2-5.[/red]")
        raise typer.Exit(code=1)
    if selection.mode == SelectionMode.ALL:
        return {"range_mode": "all"}
    return {
        "range_mode": "custom",
        "custom_range_start": selection.start or 1,
        "custom_range_end": selection.end or MAX_RANGE_BOUND,
    }


@app.command(name="download")
def download_command(
    urls: list[str] | None = typer.Argument(  # noqa: B008
        None, help="Pixiv artwork URLs, ids, or paths to files containing them."
    ),
    range_text: str | None = typer.Option(
        None, "-r", "--range", help="Download only images A-B (1-indexed, inclusive)."
    ),
    all_pages: bool = typer.Option(False, "--all", help="Download every image."),
    prompt: bool = typer.Option(
        False, "--prompt", help="Ask which images to download for multi-image works."
    ),
    retry: bool | None = typer.Option(
        None, "--retry/--no-retry", help="Retry failed image fetches up to 4 times."
    ),
    anti_theft: bool | None = typer.Option(
        None,
        "--anti-theft/--no-anti-theft",
        help="Append the '__pixiv-only' marker to file names.",
    ),
    root: str | None = typer.Option(
        None, "--root", help="Name of the folder created inside the output directory."
    ),
    output_dir: str | None = typer.Option(
        None, "-d", "--directory", help="Directory to save downloads in."
    ),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace existing files instead of renaming."
    ),
    stdin: bool = typer.Option(
        False, "--stdin", help="Read URLs from standard input, one URL per line."
    ),
):
    """Download artworks from Pixiv."""
    if stdin:
        if urls:
            console.print(
                "[yellow]⚠️  Both URLs and --stdin provided. Using --stdin only.[/yellow]"
            )
        urls = _read_urls_from_stdin()
    elif not urls:
        console.print(
            "[red]✗ No URLs provided.[/red] "
            "Use: [cyan]pixiv-cli download <URL>[/cyan] or [cyan]--stdin[/cyan]"
        )
        raise typer.Exit(code=1)

    cli_options = {
        key: value
        for key, value in {
            "source_urls": urls,
            "retry_enabled": retry,
            "anti_theft_suffix_enabled": anti_theft,
            "root_folder_name": root,
            "output_dir": output_dir,
            "conflict_policy": "overwrite" if overwrite else None,
        }.items()
        if value is not None
    }
    cli_options.update(_range_options(range_text, all_pages, prompt))

    async def _download_async():
        api_client = None
        manager = None
        duration = 0.0

        async with ProgressManager(console=console) as progress_manager:
            try:
                config = ConfigManager(CONFIG_FILE).load_config(cli_options)
                api_client = PixivAPIClient(config.session_cookie)
                manager = DownloadManager(
                    config,
                    api_client,
                    progress_manager,
                    prompt=RichRangePrompt(console),
                )

                console.print("[bold cyan]🎨 Starting download session...[/bold cyan]")
                await manager.execute_downloads()
                duration = manager.stats.elapsed_s
            finally:
                await close_connection_pool()
                if api_client:
                    await api_client.close()

        if manager:
            print_summary_panel(manager.stats, duration)
            if manager.stats.illusts_failed or manager.stats.assets_failed:
                raise typer.Exit(code=1)

    asyncio.run(_download_async())


@app.command()
def info(
    url: str = typer.Argument(..., help="A Pixiv artwork URL or id."),
):
    """Resolve an artwork and list its downloadable images."""
    illust_id = parse_pixiv_url(url)
    if not illust_id:
        console.print(f"[red]✗ Invalid or unsupported URL: {url}[/red]")
        raise typer.Exit(code=1)

    async def _info_async():
        session_cookie = ""
        if CONFIG_FILE.is_file():
            session_cookie = ConfigManager(CONFIG_FILE).load_config().session_cookie
        api_client = PixivAPIClient(session_cookie)
        try:
            return await MetadataResolver(api_client).resolve(illust_id)
        finally:
            await api_client.close()

    try:
        meta = asyncio.run(_info_async())
    except PixivCliError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    print_asset_table(meta)


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except PixivCliError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
