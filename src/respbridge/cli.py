"""respbridge CLI entrypoint."""

from __future__ import annotations

import logging
import sys

import click

from respbridge import __version__


@click.group()
@click.version_option(version=__version__, prog_name="respbridge")
@click.option("--verbose", "-v", is_flag=True, help="Log request and stream diagnostics.")
@click.option("--telemetry", is_flag=True, help="Enable tracing (needs respbridge[otel]).")
@click.option("--otlp-endpoint", default=None,
              help="Export spans via OTLP/gRPC here instead of the console.")
def main(verbose: bool, telemetry: bool, otlp_endpoint: str | None) -> None:
    """respbridge — talk to a Responses endpoint with canonical conversations."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if telemetry or otlp_endpoint:
        from respbridge.cli_commands._output import console
        from respbridge.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(
                export_to_console=otlp_endpoint is None,
                otlp_endpoint=otlp_endpoint,
            )
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)


# Register subcommands
from respbridge.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
