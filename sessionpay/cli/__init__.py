"""
sessionpay/cli/__init__.py

SessionPay CLI: root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    sessionpay = "sessionpay.cli:cli"
"""

import logging
from pathlib import Path
from typing import Optional

import click

from sessionpay.cli.journal import journal_group
from sessionpay.cli.node import keygen_command, node_group, sign_command
from sessionpay.cli.session import (
    balance_command,
    claim_command,
    close_command,
    deposit_command,
    open_command,
    session_command,
    withdraw_command,
)
from sessionpay.runtime import SessionPayConfig


@click.group()
@click.version_option(package_name="sessionpay")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    metavar="PATH",
    help="YAML configuration file.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], verbose: bool) -> None:
    """
    SessionPay: pre-funded, node-signed session settlement.

    \b
    Quick start:
      sessionpay keygen --out node.key
      sessionpay node register --as 0xOWNER --label 192.168.1.1
      sessionpay deposit --as alice 1ether
      sessionpay open --as alice --node 1 --limit 0.5ether
      sessionpay sign --key node.key 1 0.3ether
      sessionpay close --as alice 1 0.3ether 0xSIGNATURE
      sessionpay claim --as 0xOWNER 1
    """
    if config_path:
        config = SessionPayConfig.from_yaml(Path(config_path))
    else:
        config = SessionPayConfig()
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"config": config, "runtime": None}


cli.add_command(deposit_command)
cli.add_command(withdraw_command)
cli.add_command(open_command)
cli.add_command(close_command)
cli.add_command(claim_command)
cli.add_command(balance_command)
cli.add_command(session_command)
cli.add_command(node_group)
cli.add_command(keygen_command)
cli.add_command(sign_command)
cli.add_command(journal_group)
