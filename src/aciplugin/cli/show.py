import json
from pathlib import Path
from typing import Any

import click

from aciplugin.cli.utils import configure_logging, output_error
from aciplugin.config.bootstrap import ConfigBootstrap
from aciplugin.config.errors import ConfigurationError

MASK = "********"
SECRET_KEYS = frozenset({"Password", "RedisOnDiskEncryptedPassword"})


def mask_secrets(value: Any) -> Any:
    """Replace secret values in a dumped configuration with a fixed mask."""
    if isinstance(value, dict):
        return {
            key: (MASK if key in SECRET_KEYS and item else mask_secrets(item))
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [mask_secrets(item) for item in value]
    return value


@click.command(name="show")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    help="Configuration file (defaults to $PLUGIN_CONFIG_FILE_PATH)",
)
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def show(config_path: Path | None, debug: bool) -> None:
    """Print the validated configuration, with defaults applied, as JSON.

    Secrets are masked. Key material and decrypted values are never printed.
    """
    configure_logging(debug=debug, log_level="CRITICAL")

    try:
        result = ConfigBootstrap(config_path).run()
    except ConfigurationError as exc:
        output_error(exc, json_output=True, debug=debug)
        return

    dumped = result.config.model_dump(mode="json", by_alias=True)
    click.echo(json.dumps(mask_secrets(dumped), indent=2))
