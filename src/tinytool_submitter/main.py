"""Tiny Tool Submitter - submit a repository to Tiny Tool Town.

Usage:
    tinytool-submit [REPO] [options]
    tinytool-submit . --theme neon
    tinytool-submit ./my-tool --headless --model llama3.2
"""

from __future__ import annotations

import json
import logging
import webbrowser
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlsplit, urlunsplit

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .detector import (
    detect_git_user_name,
    detect_github_url,
    detect_github_username,
    detect_language,
    detect_license,
    find_readme,
    is_readme_candidate,
    read_readme,
    repo_name_from_url,
)
from .generator import ToolMetadata, field_issues, generate_metadata
from .issue_url import build_issue_url
from .model import DEFAULT_MODEL, OLLAMA_BASE_URL, OLLAMA_PORT, ModelError, OllamaClient
from .themes import (
    NO_THEME_LABEL,
    THEME_OPTIONS,
    THEME_PALETTES,
    display_theme,
    normalize_theme_selection,
    parse_theme_flag,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Edit menu key -> ToolMetadata attribute
EDITABLE_FIELDS = {
    "name": "name",
    "tagline": "tagline",
    "description": "description",
    "github_url": "github_url",
    "website": "website_url",
    "author": "author",
    "author_github": "author_github",
    "tags": "tags",
    "language": "language",
    "license": "license",
    "theme": "theme",
}

OPTIONAL_FIELDS = {"website_url", "language", "license"}


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        handlers=[handler],
        force=True,
    )
    # Request-level chatter from the HTTP stack is never useful here
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _ollama_base_url(value: str) -> str:
    """Accept OLLAMA_HOST style values such as ``127.0.0.1:11434``."""
    value = value.strip()
    if "://" not in value:
        value = f"http://{value}"
    parts = urlsplit(value.rstrip("/"))
    try:
        has_port = parts.port is not None
    except ValueError:
        has_port = True
    # Ollama only defaults to its own port for plain http hosts
    if parts.scheme == "http" and parts.hostname and not has_port:
        parts = parts._replace(netloc=f"{parts.netloc}:{OLLAMA_PORT}")
    return urlunsplit(parts)


@click.command()
@click.argument("repo", default=".")
@click.option("--readme", "readme_path", default=None, help="Path to the README to analyze")
@click.option("--model", "-m", "model_name", default=None, envvar="TINYTOOL_MODEL",
              help=f"Ollama model name (default in headless mode: {DEFAULT_MODEL})")
@click.option("--headless", is_flag=True, help="Run without any interactive prompts")
@click.option("--verbose", "-v", is_flag=True, help="Show diagnostic output")
@click.option("--cli-path", default=None, envvar="TINYTOOL_OLLAMA_PATH",
              help="Path to the ollama executable")
@click.option("--ollama-url", default=OLLAMA_BASE_URL, envvar="OLLAMA_HOST", show_default=True,
              help="Ollama server address")
@click.option("--theme", "theme_name", default=None,
              help="Page theme (none, terminal, neon, ...)")
@click.option("--json", "json_output", is_flag=True,
              help="Print the final metadata and URL as JSON (implies --headless)")
@click.version_option(version=__version__)
def cli(
    repo: str,
    readme_path: str | None,
    model_name: str | None,
    headless: bool,
    verbose: bool,
    cli_path: str | None,
    ollama_url: str,
    theme_name: str | None,
    json_output: bool,
):
    """Generate a Tiny Tool Town submission for the repository at REPO.

    Reads the README, asks a local Ollama model for a name, tagline,
    description and tags, adds what git knows about the repository, and
    builds a pre-filled submission issue URL.

    Examples:

        tinytool-submit .

        tinytool-submit ./my-tool --theme terminal

        tinytool-submit ./my-tool --headless --readme docs/README.md
    """
    _configure_logging(verbose)
    headless = headless or json_output
    # Keep stdout clean for the JSON document
    console = Console(stderr=json_output)

    try:
        _submit(
            console,
            repo=repo,
            readme_path=readme_path,
            model_name=model_name,
            headless=headless,
            cli_path=cli_path,
            ollama_url=_ollama_base_url(ollama_url),
            theme_name=theme_name,
            json_output=json_output,
        )
    except click.Abort:
        console.print("\n[yellow]Cancelled by user.[/]")


def _submit(
    console: Console,
    *,
    repo: str,
    readme_path: str | None,
    model_name: str | None,
    headless: bool,
    cli_path: str | None,
    ollama_url: str,
    theme_name: str | None,
    json_output: bool,
) -> None:
    console.print()
    console.print(Panel.fit(
        f"[bold cyan]Tiny Tool Town v{__version__}[/] - Submission Helper",
        border_style="cyan",
    ))

    theme_override = None
    if theme_name is not None:
        try:
            theme_override = parse_theme_flag(theme_name)
        except ValueError as e:
            raise click.ClickException(str(e))

    repo_dir = Path(repo).resolve()
    if not repo_dir.is_dir():
        raise click.ClickException(f"Directory not found: {repo_dir}")
    console.print(f"Repository: [bold]{escape(str(repo_dir))}[/]")

    # Step 1: README
    readme = _choose_readme(console, repo_dir, readme_path, headless)
    if not readme.is_file():
        raise click.ClickException(f"README not found: {readme}")
    readme_content = read_readme(readme)
    console.print(f"README length: {len(readme_content)} chars", style="dim")

    # Step 2: repository facts
    console.print()
    console.print("[bold]Detecting repository metadata...[/]", style="cyan")
    github_url = detect_github_url(repo_dir)
    license_id = detect_license(repo_dir)
    language = detect_language(repo_dir)
    author_name = detect_git_user_name(repo_dir)
    author_github = detect_github_username(github_url)
    repo_name = repo_name_from_url(github_url, repo_dir)
    _print_detected_facts(console, {
        "GitHub URL": github_url,
        "License": license_id,
        "Language": language,
        "Author": author_name,
        "Username": author_github,
    })

    # Step 3: model inference
    console.print()
    console.print("[bold]Starting Ollama to analyze your README...[/]", style="cyan")
    client = OllamaClient(model=model_name or DEFAULT_MODEL, base_url=ollama_url, cli_path=cli_path)
    try:
        metadata = _generate(console, client, readme_content, repo_name, model_name, headless)
    finally:
        client.close()

    metadata.github_url = github_url or ""
    metadata.language = language
    metadata.license = license_id
    metadata.author = author_name or ""
    metadata.author_github = author_github or ""
    if theme_name is not None:
        metadata.theme = theme_override

    # Step 4: review
    console.print()
    _print_metadata_table(console, metadata)

    if not headless:
        _print_theme_palettes(console)
        if click.confirm("Select a page theme now?", default=False):
            metadata.theme = _prompt_for_theme(console, metadata.theme)
            console.print(f"[green]Updated theme to {display_theme(metadata.theme)}[/]")
            _print_metadata_table(console, metadata)
        _edit_loop(console, metadata)

    # Step 5: URL
    issue_url = build_issue_url(metadata)

    if json_output:
        click.echo(json.dumps({**metadata.to_dict(), "issue_url": issue_url}, indent=2))
        return

    console.print()
    console.print(Panel.fit("[bold green]Ready to Submit![/]", border_style="green"))
    console.print("Open this URL to submit your tool to Tiny Tool Town:")
    console.print()
    console.print(issue_url, style="green", soft_wrap=True)
    console.print()

    if headless or click.confirm("Open in browser?", default=True):
        if _open_url(issue_url):
            console.print("[green]Opened in browser![/]")

    console.print("Thanks for submitting to Tiny Tool Town!")


def _generate(
    console: Console,
    client: OllamaClient,
    readme_content: str,
    repo_name: str,
    model_name: str | None,
    headless: bool,
) -> ToolMetadata:
    """Get the model ready, then run metadata extraction."""
    logger.debug("Ollama CLI path: %s", client.cli_path)
    try:
        version = client.cli_version()
    except ModelError as e:
        raise click.ClickException(
            f"{e}\nInstall Ollama and ensure `ollama` is available on your PATH."
        )
    logger.debug("Ollama CLI version: %s", version)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Connecting to Ollama...", total=None)
        try:
            client.ensure_running(
                progress_callback=lambda status, completed, total: progress.update(task, description=status)
            )
        except ModelError as e:
            raise click.ClickException(str(e))
    console.print("[green]Ollama is running[/]")

    client.model = _choose_model(console, client, model_name, headless)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Setting up model...", total=None)
        try:
            client.ensure_ready(
                progress_callback=lambda status, completed, total: progress.update(task, description=status)
            )
        except ModelError as e:
            raise click.ClickException(str(e))
    console.print(f"Using model: [bold]{escape(client.model)}[/]")

    session = client.create_session()
    with console.status("Analyzing README with AI..."):
        metadata = generate_metadata(session, readme_content, repo_name)

    if metadata is None:
        if session.connection_lost:
            raise click.ClickException("Lost connection to Ollama while generating metadata.")
        raise click.ClickException("Failed to generate metadata from README.")
    return metadata


def _choose_model(
    console: Console,
    client: OllamaClient,
    model_name: str | None,
    headless: bool,
) -> str:
    if model_name:
        return model_name
    if headless:
        return DEFAULT_MODEL

    console.print("Fetching available models...", style="dim")
    try:
        models = client.list_models()
    except ModelError as e:
        logger.debug("Could not list models: %s", e)
        return DEFAULT_MODEL
    if not models:
        return DEFAULT_MODEL

    recommended = next(
        (m for m in models if m == DEFAULT_MODEL or m.split(":")[0] == DEFAULT_MODEL),
        models[0],
    )
    choices = [(f"{recommended} (recommended)", recommended)]
    choices.extend((m, m) for m in models if m != recommended)
    return _select(console, "Select a model", choices)


def _select(console: Console, message: str, choices: list[tuple[str, T]], default: int = 1) -> T:
    """Numbered single-choice prompt."""
    for i, (label, _) in enumerate(choices, 1):
        console.print(f"  [cyan]{i:>2}[/] {escape(label)}")
    index = click.prompt(message, type=click.IntRange(1, len(choices)), default=default)
    return choices[index - 1][1]


def _choose_readme(
    console: Console,
    repo_dir: Path,
    readme_path: str | None,
    headless: bool,
) -> Path:
    if readme_path:
        return Path(readme_path).resolve()

    detected = find_readme(repo_dir)
    if detected:
        console.print(f"[green]Found README: {escape(str(detected.relative_to(repo_dir)))}[/]")
        if headless or click.confirm("Use this README?", default=True):
            return detected
        return _prompt_for_readme(console, repo_dir)

    if headless:
        raise click.ClickException(
            "No README found and running in headless mode. Use --readme <path>."
        )
    console.print("[yellow]No README found automatically. Let's pick one.[/]")
    return _prompt_for_readme(console, repo_dir)


def _prompt_for_readme(console: Console, repo_dir: Path) -> Path:
    """Browse directories until a README is chosen. Cancel raises Abort."""
    current = repo_dir
    while True:
        try:
            entries = sorted(current.iterdir(), key=lambda p: p.name.lower())
        except OSError:
            entries = []

        choices: list[tuple[str, tuple[str, Any]]] = [("Enter full path manually", ("manual", None))]
        choices.extend(
            (f"[file] {p.name}", ("file", p))
            for p in entries if p.is_file() and is_readme_candidate(p.name)
        )
        choices.extend(
            (f"[dir]  {p.name}/", ("dir", p))
            for p in entries if p.is_dir() and p.name != ".git"
        )
        if current.parent != current:
            choices.append(("Go up", ("up", current.parent)))
        choices.append(("Cancel", ("cancel", None)))

        shown = current.relative_to(repo_dir) if current.is_relative_to(repo_dir) else current
        console.print()
        action, target = _select(console, f"Select README in {shown} or browse", choices)

        if action == "cancel":
            raise click.Abort()
        if action in ("dir", "up"):
            current = target
            continue
        if action == "file":
            return target

        selected = click.prompt(
            "README path",
            default=str(repo_dir / "README.md"),
            type=click.Path(exists=True, dir_okay=False),
        )
        return Path(selected).resolve()


def _prompt_for_theme(console: Console, current: str | None) -> str | None:
    choices = [(option, option) for option in THEME_OPTIONS]
    label = display_theme(current)
    default = THEME_OPTIONS.index(label) + 1 if label in THEME_OPTIONS else 1
    return normalize_theme_selection(_select(console, "Select page theme", choices, default=default))


def _edit_loop(console: Console, metadata: ToolMetadata) -> None:
    """Let the user edit fields one at a time until Done."""
    choices = [("Done", "done")] + [(key, key) for key in EDITABLE_FIELDS]
    while True:
        console.print()
        field_key = _select(console, "Edit metadata fields (choose Done to continue)", choices)
        if field_key == "done":
            return

        if field_key == "theme":
            _print_theme_palettes(console)
            metadata.theme = _prompt_for_theme(console, metadata.theme)
            console.print(f"[green]Updated theme to {display_theme(metadata.theme)}[/]")
            _print_metadata_table(console, metadata)
            continue

        attr = EDITABLE_FIELDS[field_key]
        current = getattr(metadata, attr) or ""
        value = click.prompt(f"New value for {field_key}", default=current, show_default=bool(current)).strip()
        if attr in OPTIONAL_FIELDS:
            setattr(metadata, attr, value or None)
        else:
            setattr(metadata, attr, value)
        console.print(f"[green]Updated {field_key}[/]")

        for issue in field_issues(metadata):
            console.print(f"[yellow]Warning: {issue}[/]")
        _print_metadata_table(console, metadata)


def _print_detected_facts(console: Console, facts: dict[str, str | None]) -> None:
    for label, value in facts.items():
        if value:
            console.print(f"   {label + ':':<12}{escape(value)}", style="dim")


def _print_metadata_table(console: Console, metadata: ToolMetadata) -> None:
    """Print the submission metadata as a two-column table."""
    table = Table(title="Generated Submission Metadata", show_header=False, border_style="dim")
    table.add_column("Field", style="bold yellow")
    table.add_column("Value", max_width=60)

    table.add_row("Tool Name", escape(metadata.name))
    table.add_row("Tagline", escape(metadata.tagline))
    table.add_row("Description", escape(metadata.description))
    table.add_row("GitHub URL", escape(metadata.github_url))
    table.add_row("Website", escape(metadata.website_url or "(none)"))
    table.add_row("Author", escape(metadata.author))
    table.add_row("GitHub User", escape(metadata.author_github))
    table.add_row("Tags", escape(metadata.tags))
    table.add_row("Language", escape(metadata.language or "(not detected)"))
    table.add_row("License", escape(metadata.license or "(not detected)"))
    table.add_row("Theme", escape(display_theme(metadata.theme)))

    console.print(table)


def _print_theme_palettes(console: Console) -> None:
    console.print()
    console.print("[bold cyan]Theme Preview[/]")
    console.print(f"   {escape(NO_THEME_LABEL):<21}uses Tiny Tool Town default")
    for name, colors in THEME_PALETTES.items():
        swatches = " ".join(f"[{hex_color}]■[/]" for hex_color in colors)
        console.print(f"   {name:<20} {swatches}  {', '.join(colors)}")


def _open_url(url: str) -> bool:
    """Open the URL in a browser. The URL is already printed on failure."""
    try:
        return webbrowser.open(url)
    except webbrowser.Error as e:
        logger.debug("Could not open browser: %s", e)
        return False


if __name__ == "__main__":
    cli()
