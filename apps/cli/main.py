"""CLI application for Frontline."""

import httpx
import typer
from rich.console import Console
from rich.table import Table

from frontline.engine import UpdateContext, compute_updates
from frontline.exceptions import FrontlineError
from frontline.log import setup_logger
from frontline.models import Manifest, UpdateDecision
from frontline.persist import JsonFile, persist
from frontline.selector import expand_masks
from frontline.settings import Settings

console = Console()
err_console = Console(stderr=True)


def render_table(decisions: list[UpdateDecision]) -> Table:
    """Build the compact table of applied changes."""
    table = Table(box=None, show_header=False, pad_edge=False)
    for column in ("marker", "package", "old", "arrow", "new"):
        table.add_column(column, no_wrap=True)

    for decision in decisions:
        marker = "dev" if decision.section == "require-dev" else ""
        table.add_row(marker, decision.package, decision.old_constraint, "→", decision.new_constraint)
    return table


app = typer.Typer(
    name="frontline",
    help="Frontline - Upgrade version constraints in composer.json to the latest versions",
    add_completion=False,
)


@app.command()
def update(
    packages: list[str] | None = typer.Argument(
        None,
        help="Packages that should be updated, if not provided all packages are. "
        "Accepts wildcards like doctrine/*.",
        show_default=False,
    ),
) -> None:
    """Upgrade version constraints in composer.json to the latest versions."""

    settings = Settings()
    setup_logger(level=settings.log_level)
    json_file = JsonFile(settings.composer_file)
    filename = json_file.path.name

    if not json_file.exists():
        err_console.print(f"Could not find your {filename} file!", style="red")
        raise typer.Exit(1)

    try:
        manifest = Manifest(json_file.read(), filename=filename)
        masks = expand_masks(packages or [])

        with httpx.Client(timeout=settings.timeout, follow_redirects=True) as client:
            context = UpdateContext.create(
                client,
                manifest,
                repository_url=settings.repository_url,
                php_version=settings.php_version,
            )
            decisions = compute_updates(manifest, masks, context)

        if not decisions:
            console.print(f"All version constraints in {filename} are up to date.")
            return

        persist(json_file.path, decisions)

    except FrontlineError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise typer.Exit(1)

    console.print(render_table(decisions))


if __name__ == "__main__":
    app()
