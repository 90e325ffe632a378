"""
sessionpay/cli/journal.py

Event journal commands.

Exit codes:
    0  journal intact
    1  journal has violations
"""

import json
import sys

import click

from sessionpay.cli.common import protocol_command
from sessionpay.core.exceptions import JournalError
from sessionpay.runtime import RuntimeContext


@click.group(name="journal")
def journal_group() -> None:
    """Inspect the signed event journal."""
    pass


@journal_group.command(name="verify")
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@protocol_command(save=False)
def verify_command(runtime: RuntimeContext, fmt: str) -> None:
    """Verify chain linkage and signatures of the event journal."""
    error = None
    try:
        runtime.journal.verify_or_raise()
    except JournalError as exc:
        error = str(exc)

    stats = runtime.journal.get_stats()
    if fmt == "json":
        click.echo(json.dumps({"valid": error is None, "error": error, **stats}, sort_keys=True))
    else:
        click.echo(f"journal  {stats['journal_file']}")
        click.echo(f"entries  {stats['total_entries']}")
        click.echo(f"status   {'intact' if error is None else 'VIOLATED: ' + error}")
    if error is not None:
        sys.exit(1)
