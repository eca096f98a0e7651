from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from apirouting.config import RoutingConfig
from apirouting.errors import RoutingError
from apirouting.orchestrator.pipeline import scan_modules
from apirouting.routing.paths import relative_source


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@app.command()
def routes(
    package: str = typer.Argument(..., help="Dotted name of the module or package to scan"),
    project_root: Optional[str] = typer.Option(None, help="Project root (default: nearest pyproject.toml)"),
    path: Optional[str] = typer.Option(None, "--import-path", help="Directory prepended to sys.path before importing"),
    format: str = typer.Option("table", help="Output format: table|json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """List the endpoints discovered in PACKAGE without starting a server."""
    _setup_logging(verbose)

    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    if path:
        import_path = Path(path).expanduser().resolve()
        if not import_path.is_dir():
            raise typer.BadParameter(f"Import path is not a directory: {import_path}")
        sys.path.insert(0, str(import_path))

    overrides = {}
    if project_root:
        overrides["project_root"] = Path(project_root).expanduser().resolve()
    config = RoutingConfig.from_env(**overrides)

    try:
        result = scan_modules(package, config=config)
    except (ImportError, RoutingError) as exc:
        console.print(f"[bold red]error[/bold red]: {exc}")
        raise typer.Exit(code=1)

    table = result.table
    if fmt == "json":
        rows = []
        for d in table:
            row = d.summary()
            row["file"] = relative_source(d.source_file, config)
            rows.append(row)
        console.print_json(json.dumps(rows))
        return

    console.print(f"[bold green]apirouting[/bold green] routes: {package}")
    console.print(
        f"Types scanned: {result.types_scanned}  candidates: {len(result.candidates)}  "
        f"rejected: {len(result.rejected)}"
    )

    out = Table(show_header=True, header_style="bold")
    out.add_column("METHOD", no_wrap=True)
    out.add_column("PATH")
    out.add_column("HANDLER")
    out.add_column("FILE", no_wrap=True)
    out.add_column("MARKER", no_wrap=True)

    for d in table:
        out.add_row(
            d.method.value,
            d.route,
            f"{d.endpoint_type.__qualname__}.{d.handler_name}",
            relative_source(d.source_file, config),
            "class" if d.class_level else "method",
        )
    console.print(out)

    for cls in result.rejected:
        console.print(f"[yellow]skipped[/yellow] {cls.__module__}.{cls.__qualname__} (no unambiguous handler)")


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
