"""
sessionpay/cli/session.py

Balance and session commands.

Usage:
    sessionpay deposit  --as USER AMOUNT
    sessionpay withdraw --as USER AMOUNT
    sessionpay open     --as USER --node NODE_ID --limit AMOUNT [--now TS]
    sessionpay close    --as USER SESSION_ID AMOUNT SIGNATURE
    sessionpay claim    --as OWNER SESSION_ID [--now TS]
    sessionpay balance  PRINCIPAL
    sessionpay session  SESSION_ID [--format json]
"""

import json
import sys
from typing import Optional

import click

from sessionpay.cli.common import AMOUNT, protocol_command
from sessionpay.runtime import RuntimeContext


caller_option = click.option(
    "--as", "caller",
    required=True,
    metavar="PRINCIPAL",
    help="Identity of the calling principal.",
)

now_option = click.option(
    "--now",
    type=int,
    default=None,
    metavar="UNIX_SECONDS",
    help="Override the current time (unix seconds).",
)


@click.command(name="deposit")
@caller_option
@click.argument("amount", type=AMOUNT)
@protocol_command()
def deposit_command(runtime: RuntimeContext, caller: str, amount: int) -> None:
    """Add AMOUNT to the caller's balance."""
    balance = runtime.manager.deposit(caller, amount)
    click.echo(f"balance {balance}")


@click.command(name="withdraw")
@caller_option
@click.argument("amount", type=AMOUNT)
@protocol_command()
def withdraw_command(runtime: RuntimeContext, caller: str, amount: int) -> None:
    """Withdraw AMOUNT from the caller's balance."""
    balance = runtime.manager.withdraw(caller, amount)
    click.echo(f"balance {balance}")


@click.command(name="open")
@caller_option
@click.option("--node", "node_id", type=int, required=True, help="Node id.")
@click.option("--limit", "cost_limit", type=AMOUNT, required=True,
              help="Maximum amount the session may settle for.")
@now_option
@protocol_command()
def open_command(
    runtime:    RuntimeContext,
    caller:     str,
    node_id:    int,
    cost_limit: int,
    now:        Optional[int],
) -> None:
    """Open a session against a node."""
    session_id = runtime.manager.open_session(caller, cost_limit, node_id, now=now)
    click.echo(f"session {session_id}")


@click.command(name="close")
@caller_option
@click.argument("session_id", type=int)
@click.argument("amount", type=AMOUNT)
@click.argument("signature")
@protocol_command()
def close_command(
    runtime:    RuntimeContext,
    caller:     str,
    session_id: int,
    amount:     int,
    signature:  str,
) -> None:
    """Settle SESSION_ID for AMOUNT using the node's SIGNATURE (hex)."""
    session = runtime.manager.close_session(caller, session_id, amount, signature)
    click.echo(f"closed {session.session_id} claimable {session.claimable_amount}")


@click.command(name="claim")
@caller_option
@click.argument("session_id", type=int)
@now_option
@protocol_command()
def claim_command(
    runtime:    RuntimeContext,
    caller:     str,
    session_id: int,
    now:        Optional[int],
) -> None:
    """Collect the claimable amount of SESSION_ID as the node owner."""
    amount = runtime.manager.claim_payment(caller, session_id, now=now)
    click.echo(f"claimed {amount}")


@click.command(name="balance")
@click.argument("principal")
@protocol_command(save=False)
def balance_command(runtime: RuntimeContext, principal: str) -> None:
    """Show a principal's balance."""
    click.echo(str(runtime.manager.get_balance(principal)))


@click.command(name="session")
@click.argument("session_id", type=int)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@protocol_command(save=False)
def session_command(runtime: RuntimeContext, session_id: int, fmt: str) -> None:
    """Show the details of a session."""
    session = runtime.manager.get_session_details(session_id)
    if session is None:
        click.echo(f"session {session_id} not found", err=True)
        sys.exit(1)
    if fmt == "json":
        click.echo(json.dumps(session.to_dict(), sort_keys=True))
        return
    state = "active" if session.is_active else ("settled" if session.is_settled else "closed")
    click.echo(f"session    {session.session_id}")
    click.echo(f"state      {state}")
    click.echo(f"user       {session.user}")
    click.echo(f"node       {session.node_id}")
    click.echo(f"started    {session.start_time}")
    click.echo(f"limit      {session.cost_limit}")
    click.echo(f"claimable  {session.claimable_amount}")
