"""
sessionpay/cli/node.py

Node registry and node-key commands.

Usage:
    sessionpay node register   --as OWNER [--label ENDPOINT]
    sessionpay node label      --as OWNER NODE_ID ENDPOINT
    sessionpay node activate   --as OWNER NODE_ID
    sessionpay node deactivate --as OWNER NODE_ID
    sessionpay node show       NODE_ID
    sessionpay keygen          [--out PATH]
    sessionpay sign            --key PATH SESSION_ID AMOUNT
"""

from pathlib import Path
from typing import Optional

import click

from sessionpay.cli.common import AMOUNT, protocol_command
from sessionpay.core.crypto import NodeKeyManager
from sessionpay.runtime import RuntimeContext


owner_option = click.option(
    "--as", "caller",
    required=True,
    metavar="ADDRESS",
    help="Address of the node owner.",
)


@click.group(name="node")
def node_group() -> None:
    """Manage the node registry."""
    pass


@node_group.command(name="register")
@owner_option
@click.option("--label", default="", help="Endpoint address, e.g. 192.168.1.1")
@protocol_command()
def register_command(runtime: RuntimeContext, caller: str, label: str) -> None:
    """Register a node owned by the caller."""
    node_id = runtime.registry.register_node(caller, label)
    click.echo(f"node {node_id}")


@node_group.command(name="label")
@owner_option
@click.argument("node_id", type=int)
@click.argument("label")
@protocol_command()
def label_command(runtime: RuntimeContext, caller: str, node_id: int, label: str) -> None:
    """Set the endpoint label of NODE_ID."""
    runtime.registry.set_node_label(caller, node_id, label)
    click.echo(f"node {node_id} label {label}")


@node_group.command(name="activate")
@owner_option
@click.argument("node_id", type=int)
@protocol_command()
def activate_command(runtime: RuntimeContext, caller: str, node_id: int) -> None:
    """Accept new sessions on NODE_ID."""
    runtime.registry.set_node_active(caller, node_id, True)
    click.echo(f"node {node_id} active")


@node_group.command(name="deactivate")
@owner_option
@click.argument("node_id", type=int)
@protocol_command()
def deactivate_command(runtime: RuntimeContext, caller: str, node_id: int) -> None:
    """Stop accepting new sessions on NODE_ID."""
    runtime.registry.set_node_active(caller, node_id, False)
    click.echo(f"node {node_id} inactive")


@node_group.command(name="show")
@click.argument("node_id", type=int)
@protocol_command(save=False)
def show_command(runtime: RuntimeContext, node_id: int) -> None:
    """Show the details of NODE_ID."""
    details = runtime.registry.get_node_details(node_id)
    click.echo(f"node     {node_id}")
    click.echo(f"owner    {details.owner}")
    click.echo(f"label    {details.label}")
    click.echo(f"active   {'yes' if details.is_active else 'no'}")


@click.command(name="keygen")
@click.option(
    "--out",
    type=click.Path(dir_okay=False),
    default=None,
    metavar="PATH",
    help="Write the secret key (hex) to PATH instead of printing it.",
)
def keygen_command(out: Optional[str]) -> None:
    """Generate a secp256k1 node key and print its address."""
    key = NodeKeyManager.generate()
    secret_hex = key.private_bytes_raw().hex()
    if out:
        path = Path(out)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(secret_hex + "\n", encoding="utf-8")
        path.chmod(0o600)
    else:
        click.echo(f"secret   {secret_hex}")
    click.echo(f"address  {key.address}")


@click.command(name="sign")
@click.option(
    "--key", "key_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="File holding the node's secret key (hex).",
)
@click.argument("session_id", type=int)
@click.argument("amount", type=AMOUNT)
def sign_command(key_path: str, session_id: int, amount: int) -> None:
    """Authorize payment of AMOUNT for SESSION_ID with a node key."""
    key = NodeKeyManager.from_hex(Path(key_path).read_text(encoding="utf-8").strip())
    click.echo("0x" + key.sign_settlement(session_id, amount).hex())
