"""Command-line interface for featurefactory."""

import importlib
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from featurefactory.features.engine import FeatureFactory

app = typer.Typer(
    name="featurefactory",
    help="Evaluate declared features and encode them for models.",
    no_args_is_help=True,
)

console = Console(stderr=True)

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to the feature declarations YAML file.",
        exists=True,
        dir_okay=False,
    ),
]
ModuleOption = Annotated[
    str | None,
    typer.Option(
        "--module",
        "-m",
        help="Importable module defining the feature functions.",
    ),
]


@app.callback()
def main(
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    ] = "WARNING",
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Emit logs as JSON lines."),
    ] = False,
) -> None:
    """Configure logging for all commands."""
    from featurefactory.utils.logging import configure_logging

    configure_logging(level=log_level, json_output=json_logs)


def _load_factory(config: Path, module: str | None) -> "FeatureFactory":
    from featurefactory.config.loader import load_factory_config
    from featurefactory.errors import FeatureFactoryError
    from featurefactory.features.engine import FeatureFactory

    try:
        namespace = importlib.import_module(module) if module else None
    except ImportError as e:
        console.print(f"[red]Error: couldn't import module '{module}': {e}[/red]")
        raise typer.Exit(code=1) from e

    try:
        factory_config = load_factory_config(config)
        return FeatureFactory.from_config(factory_config, namespace=namespace)
    except FeatureFactoryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def evaluate(
    config: ConfigOption,
    input_path: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Text file with one sample per line.",
            exists=True,
            dir_okay=False,
        ),
    ],
    fmt: Annotated[
        str,
        typer.Option("--format", "-f", help="normal, numeric or binary."),
    ] = "numeric",
    features: Annotated[
        str | None,
        typer.Option("--features", help="Comma-separated feature names (default: all)."),
    ] = None,
    module: ModuleOption = None,
    header: Annotated[
        bool,
        typer.Option("--header/--no-header", help="Print column names first."),
    ] = False,
) -> None:
    """Evaluate features on every line of a file, one tab-separated row per line."""
    from featurefactory.errors import FeatureFactoryError
    from featurefactory.features.result import SkipBatch

    selector: str | list[str] = "ALL"
    if features:
        selector = [name.strip() for name in features.split(",") if name.strip()]

    kept = skipped = 0
    with _load_factory(config, module) as factory:
        try:
            if header:
                typer.echo("\t".join(factory.column_names(selector, fmt)))
            with input_path.open(encoding="utf-8") as f:
                for line in f:
                    result = factory.evaluate_result(selector, fmt, line.removesuffix("\n"))
                    if isinstance(result, SkipBatch):
                        skipped += 1
                        console.print(f"[yellow]Skipped: {result.reason}[/yellow]")
                        continue
                    kept += 1
                    typer.echo("\t".join(str(v) for v in result.value))
        except FeatureFactoryError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1) from e

    console.print(f"[dim]Evaluated {kept} samples, skipped {skipped}[/dim]")


@app.command()
def mappings(
    config: ConfigOption,
    module: ModuleOption = None,
) -> None:
    """Show the persisted category mappings the declared features would use."""
    from featurefactory.errors import MappingStoreError
    from featurefactory.features.kinds import FeatureKind
    from featurefactory.mapping.store import find_mapping_file, parse_mapping_lines

    with _load_factory(config, module) as factory:
        table = Table(title=f"Category mappings ({factory.identity})")
        table.add_column("Feature", style="cyan")
        table.add_column("Mapping", style="green")
        table.add_column("Entries", justify="right")

        for descriptor in factory.registry:
            if descriptor.kind is not FeatureKind.CATEGORICAL:
                table.add_row(descriptor.name, f"[dim]{descriptor.kind.value}[/dim]", "-")
            elif getattr(descriptor, "category_numbers", None) is not None:
                table.add_row(descriptor.name, "explicit cat2num", str(len(descriptor.category_numbers)))
            elif descriptor.values is not None:
                table.add_row(descriptor.name, "declared values", str(len(descriptor.domain())))
            else:
                path = find_mapping_file(factory.identity, descriptor.name, factory.mapping_store)
                if path is None:
                    table.add_row(descriptor.name, "[yellow]none yet[/yellow]", "0")
                else:
                    try:
                        entries = parse_mapping_lines(path.read_text(encoding="utf-8"), path)
                    except MappingStoreError as e:
                        console.print(f"[red]Error: {escape(str(e))}[/red]")
                        raise typer.Exit(code=1) from e
                    except (OSError, UnicodeDecodeError) as e:
                        console.print(f"[red]Error: couldn't read mapping file {path}: {e}[/red]")
                        raise typer.Exit(code=1) from e
                    table.add_row(descriptor.name, str(path), str(len(entries)))

    Console().print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from featurefactory import __version__

    typer.echo(f"featurefactory version {__version__}")


if __name__ == "__main__":
    app()
