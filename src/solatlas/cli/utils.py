"""CLI utilities."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from solatlas.config import SolAtlasConfig, load_config
from solatlas.core.errors import SolAtlasError
from solatlas.core.logging import configure_logging
from solatlas.scan import Database

MISSING_CELL = "---"


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report SolAtlasError as a one-line click error instead of a traceback."""
    try:
        yield
    except SolAtlasError as e:
        raise click.ClickException(str(e)) from e


def get_config(ctx: click.Context) -> SolAtlasConfig:
    """Load configuration once per invocation and configure logging from it.

    Raises:
        click.ClickException: If the configuration cannot be loaded.
    """
    obj = ctx.ensure_object(dict)
    config: SolAtlasConfig | None = obj.get("config")
    if config is not None:
        return config

    config_path: Path | None = obj.get("config_path")
    with cli_errors():
        config = load_config(config_path)

    logging_config = config.logging
    if obj.get("verbose"):
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)

    obj["config"] = config
    return config


def open_database(config: SolAtlasConfig) -> Database:
    """Open the inventory database, creating tables on first use."""
    db = Database.from_config(config.database)
    db.create_all()
    return db


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def cell_text(value: Any) -> str:
    return MISSING_CELL if value is None or value == "" else str(value)
