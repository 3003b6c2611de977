import click

from aciplugin.cli.show import show
from aciplugin.cli.validate import validate


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Cisco ACI plugin configuration tools"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(validate)
cli.add_command(show)


if __name__ == "__main__":
    cli()
