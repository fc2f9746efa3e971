"""Entry point: python -m modelgen NAME [FIELD ...]

Generates a model migration and its test scaffold, then runs the
project's migrate and entities steps unless --migration-only is given.

    python -m modelgen movies title:string user:references
    python -m modelgen movies_actors movie:references actor:references:people --link
"""

from __future__ import annotations

from pathlib import Path

import click

from .codegen import TemplateRenderer
from .config import load_config
from .errors import ModelgenError
from .gen_logging import configure_logging
from .loader import get_mappings, load_mappings
from .model import AppInfo, generate
from .pipeline import PipelineEnvironment, default_steps
from .schema_parser import parse_field_tokens


@click.command()
@click.argument("name")
@click.argument("fields", nargs=-1)
@click.option("--link", "is_link", is_flag=True, help="Generate a many-to-many link table.")
@click.option(
    "--migration-only",
    is_flag=True,
    help="Only write files; do not run db migrate / db entities.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON configuration file (default: ./modelgen.json if present).",
)
@click.option("--force", is_flag=True, help="Overwrite files edited since generation.")
@click.option("-v", "--verbose", is_flag=True, help="Show pipeline step output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
def main(
    name: str,
    fields: tuple[str, ...],
    is_link: bool,
    migration_only: bool,
    config_file: Path | None,
    force: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Generate model NAME with FIELDS given as name:type."""
    configure_logging(verbose=verbose, quiet=quiet)
    try:
        overrides = {"force": True} if force else None
        config = load_config(config_file, overrides)
        environment = PipelineEnvironment.capture()
        mappings = load_mappings(Path(config.mappings_file)) if config.mappings_file else get_mappings()
        renderer = TemplateRenderer(
            environment.cwd,
            force=config.force,
            variables=config.template_variables(),
        )
        message = generate(
            renderer,
            name,
            is_link,
            migration_only,
            parse_field_tokens(fields),
            AppInfo(app_name=config.app_name),
            mappings=mappings,
            steps=default_steps(config.migrate_command, config.entities_command),
            environment=environment,
        )
    except ModelgenError as e:
        raise click.ClickException(str(e))

    click.echo(message)


if __name__ == "__main__":
    main()
