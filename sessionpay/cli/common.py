"""
Shared CLI plumbing: amount parsing, runtime loading, error mapping.

Exit codes:
    0  success
    1  operation rejected by the protocol (SessionPayError)
    2  environment error (unreadable files, bad configuration path)
"""

import functools
import sys
from decimal import Decimal, InvalidOperation
from typing import Callable

import click

from sessionpay.core.exceptions import SessionPayError
from sessionpay.core.models import ETHER
from sessionpay.runtime import RuntimeContext, SessionPayConfig


class AmountType(click.ParamType):
    """Integer wei, or a decimal with an `ether` suffix (e.g. 0.3ether)."""

    name = "amount"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        text = str(value).strip().lower()
        try:
            if text.endswith("ether"):
                wei = Decimal(text[: -len("ether")]) * ETHER
                if wei != wei.to_integral_value():
                    self.fail(f"{value!r} is finer than 1 wei", param, ctx)
                return int(wei)
            return int(text)
        except (InvalidOperation, ValueError):
            self.fail(f"{value!r} is not an amount", param, ctx)


AMOUNT = AmountType()


def load_runtime(ctx: click.Context) -> RuntimeContext:
    """Build (once per invocation) the runtime context for this command."""
    obj = ctx.find_root().obj
    if obj.get("runtime") is None:
        config: SessionPayConfig = obj["config"]
        obj["runtime"] = RuntimeContext.from_config(config)
    return obj["runtime"]


def protocol_command(save: bool = True) -> Callable:
    """
    Wrap a command body that drives the protocol.

    Loads the runtime, maps errors to exit codes and, when `save` is set,
    persists state after a successful call.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        @click.pass_context
        def wrapper(ctx: click.Context, *args, **kwargs):
            try:
                runtime = load_runtime(ctx)
                result = func(runtime, *args, **kwargs)
                if save:
                    runtime.save()
                return result
            except SessionPayError as exc:
                click.echo(f"Error: {exc}", err=True)
                sys.exit(1)
            except OSError as exc:
                click.echo(f"Error: {exc}", err=True)
                sys.exit(2)
        return wrapper
    return decorator
