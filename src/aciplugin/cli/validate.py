from collections.abc import Mapping
from pathlib import Path
from typing import Any

import click

from aciplugin.cli.utils import configure_logging, output_error, output_result
from aciplugin.config.bootstrap import BootstrapResult, ConfigBootstrap
from aciplugin.config.errors import ConfigurationError


def _plain(value: Any) -> Any:
    return dict(value) if isinstance(value, Mapping) else value


def _summary(result: BootstrapResult) -> dict[str, Any]:
    config = result.config
    return {
        "root_service_uuid": config.root_service_uuid,
        "plugin_id": config.plugin.id if config.plugin else None,
        "tls": {
            "min_version": result.tls.min_version.name,
            "max_version": result.tls.max_version.name,
            "verify_peer": result.tls.verify_peer,
            "cipher_suites": list(result.tls.cipher_suites),
        },
        "defaults_applied": [
            {"domain": s.domain, "field": s.field, "value": _plain(s.value)}
            for s in result.substitutions
        ],
    }


def _format_summary(summary: dict[str, Any]) -> str:
    output = [click.style("Configuration is valid", fg="green", bold=True)]
    output.append(f"  Root service UUID: {summary['root_service_uuid']}")
    output.append(f"  Plugin ID: {summary['plugin_id']}")
    tls = summary["tls"]
    output.append(
        f"  TLS: {tls['min_version']} - {tls['max_version']}, "
        f"verify peer: {'yes' if tls['verify_peer'] else 'no'}"
    )
    defaults_applied = summary["defaults_applied"]
    if defaults_applied:
        output.append(click.style(f"\n  Defaults applied ({len(defaults_applied)}):", fg="yellow"))
        for item in defaults_applied:
            output.append(f"    {item['domain']}.{item['field']} = {item['value']!r}")
    return "\n".join(output)


@click.command(name="validate")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    help="Configuration file (defaults to $PLUGIN_CONFIG_FILE_PATH)",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def validate(config_path: Path | None, json_output: bool, debug: bool) -> None:
    """Load and validate the plugin configuration.

    Runs the same checks as service startup: every configuration block is
    validated in order, defaults are applied, key material is read and the
    data store password is decrypted. The first problem found is reported
    and the command exits with status 1.

    \b
    Examples:
        aciplugin validate
        aciplugin validate --config /etc/plugin/config.json
        aciplugin validate --json-output
    """
    # JSON output must stay parseable, so only critical log records reach stderr
    configure_logging(debug=debug, log_level="CRITICAL" if json_output else "WARNING")

    try:
        result = ConfigBootstrap(config_path).run()
    except ConfigurationError as exc:
        output_error(exc, json_output, debug)
        return

    summary = _summary(result)
    if json_output:
        output_result(summary, json_output=True)
    else:
        click.echo(_format_summary(summary))
