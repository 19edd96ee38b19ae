"""
counter_sdk.cli.main
====================

`counter-sdk` — non-interactive commands for the upgradable counter contract.

Reads go through the toncenter JSON-RPC endpoint. Nothing here holds keys:
every state-changing command prints a `ton://transfer` deeplink for an
external wallet to sign, and `--wait` then polls the contract until the
change lands.

Examples
--------
    $ counter-sdk --testnet address --code build/SimpleContract.compiled.json --id 7
    $ counter-sdk --testnet deploy --code build/SimpleContract.compiled.json --id 7
    $ counter-sdk --testnet increase EQ... 5 --wait
    $ counter-sdk --testnet upgrade EQ... --code build/SimpleContractV2.compiled.json
    $ counter-sdk --testnet counter EQ...

Configuration
-------------
- Endpoint : `--endpoint` or env `COUNTER_SDK_ENDPOINT` (default: toncenter, per network)
- Network  : `--testnet` or env `COUNTER_SDK_TESTNET`
- API key  : `--api-key` or env `COUNTER_SDK_API_KEY`
- Timeout  : `--timeout` or env `COUNTER_SDK_TIMEOUT` seconds (default: 10.0)
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
import typer

from ..cell import Cell
from ..config import SDKConfig
from ..contracts.artifacts import code_from_hex, load_compiled
from ..contracts.counter import CounterContract
from ..errors import CounterSdkError
from ..messages import CounterConfig, config_to_cell
from ..transport import DeeplinkSender, HttpTransport, ensure_deployed
from ..utils.retry import PollTimeout, poll_until
from ..utils.units import from_nano, to_nano
from ..version import __version__ as SDK_VERSION

log = logging.getLogger(__name__)

app = typer.Typer(
    name="counter-sdk",
    help="Counter contract CLI — compute addresses, prepare messages, read state.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main", "run"]


@dataclass
class Ctx:
    config: SDKConfig
    verbose: bool = False


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, ensure_ascii=False))


@app.callback()
def _root(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", help="toncenter v2 JSON-RPC URL.", envvar="COUNTER_SDK_ENDPOINT"
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="toncenter API key.", envvar="COUNTER_SDK_API_KEY"
    ),
    testnet: Optional[bool] = typer.Option(
        None, "--testnet/--mainnet", help="Network for defaults and address flags."
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="HTTP timeout in seconds."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log SDK activity to stderr."),
) -> None:
    """
    Resolve the effective configuration (flags over COUNTER_SDK_* env vars).
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )
    config = SDKConfig.with_overrides(
        SDKConfig.from_env(),
        endpoint=endpoint,
        api_key=api_key,
        testnet=testnet,
        request_timeout=timeout,
    )
    log.debug("endpoint=%s testnet=%s", config.endpoint, config.testnet)
    ctx.obj = Ctx(config=config, verbose=verbose)


# --- helpers ------------------------------------------------------------------


def _cfg(ctx: typer.Context) -> SDKConfig:
    c: Ctx = ctx.obj
    return c.config


def _transport(ctx: typer.Context) -> HttpTransport:
    cfg = _cfg(ctx)
    return HttpTransport.from_config(cfg, sender=DeeplinkSender(testnet=cfg.testnet))


def _open(ctx: typer.Context, address: str) -> CounterContract:
    try:
        return CounterContract.create_from_address(address, transport=_transport(ctx))
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="ADDRESS") from e


def _load_code(path: Path) -> Cell:
    try:
        return load_compiled(path)
    except FileNotFoundError as e:
        raise typer.BadParameter(f"Code file not found: {path}", param_hint="--code") from e


def _value(value: Optional[str], default: int) -> int:
    return to_nano(value) if value is not None else default


def _announce(link: str) -> None:
    typer.echo(f"sign and send: {link}", err=True)


def _wait_counter(ctx: typer.Context, contract: CounterContract, before: int, attempts: Optional[int], interval: Optional[float]) -> int:
    cfg = _cfg(ctx)

    def _progress(attempt: int, value: int) -> None:
        typer.echo(f"waiting… attempt {attempt}, counter={value}", err=True)

    return poll_until(
        contract.get_counter,
        lambda v: v != before,
        interval=cfg.poll_interval if interval is None else interval,
        max_attempts=cfg.poll_attempts if attempts is None else attempts,
        on_attempt=_progress,
    )


def _message_command(
    ctx: typer.Context,
    address: str,
    send: Callable[[CounterContract], str],
    *,
    wait: bool,
    attempts: Optional[int],
    interval: Optional[float],
) -> None:
    """Common flow: check deployment, render the link, optionally wait for a counter change."""
    contract = _open(ctx, address)
    ensure_deployed(contract.transport, contract.address)
    before = contract.get_counter() if wait else None
    link = send(contract)
    out: Dict[str, Any] = {"address": contract.address.to_string(test_only=_cfg(ctx).testnet), "link": link}
    if wait:
        assert before is not None
        _announce(link)
        out["counter_before"] = before
        out["counter"] = _wait_counter(ctx, contract, before, attempts, interval)
    _print_json(out)


_WAIT = typer.Option(False, "--wait", help="Poll get_counter until it changes.")
_ATTEMPTS = typer.Option(None, "--attempts", help="Max polls with --wait (default: COUNTER_SDK_POLL_ATTEMPTS).")
_INTERVAL = typer.Option(None, "--interval", help="Seconds between polls (default: COUNTER_SDK_POLL_INTERVAL).")
_VALUE = typer.Option(None, "--value", help="Coins attached to the message, e.g. 0.05.")
_QUERY_ID = typer.Option(0, "--query-id", help="query_id carried in the message body.")


# --- commands -----------------------------------------------------------------


@app.command("version")
def version() -> None:
    """Print the SDK CLI version."""
    typer.echo(f"counter-sdk {SDK_VERSION}")


@app.command("env")
def env(ctx: typer.Context) -> None:
    """Show the effective configuration (API key masked)."""
    data = _cfg(ctx).to_dict()
    if data.get("api_key"):
        data["api_key"] = "***"
    data["deploy_value"] = from_nano(data["deploy_value"])
    data["message_value"] = from_nano(data["message_value"])
    data["sdk_version"] = SDK_VERSION
    _print_json(data)


@app.command("address")
def address(
    ctx: typer.Context,
    code: Path = typer.Option(..., "--code", "-c", help="Compiled code (JSON artifact or BOC)."),
    id_: int = typer.Option(0, "--id", help="Contract id (uint32)."),
    counter: int = typer.Option(0, "--counter", help="Initial counter (uint32)."),
    workchain: Optional[int] = typer.Option(None, "--workchain", help="Workchain (default: config)."),
) -> None:
    """Compute the address a contract with this code and config deploys to."""
    cfg = _cfg(ctx)
    wc = cfg.workchain if workchain is None else workchain
    contract = CounterContract.create_from_config(CounterConfig(id=id_, counter=counter), _load_code(code), wc)
    _print_json(
        {
            "raw": contract.address.to_raw(),
            "bounceable": contract.address.to_string(bounceable=True, test_only=cfg.testnet),
            "non_bounceable": contract.address.to_string(bounceable=False, test_only=cfg.testnet),
        }
    )


@app.command("deploy")
def deploy(
    ctx: typer.Context,
    code: Path = typer.Option(..., "--code", "-c", help="Compiled code (JSON artifact or BOC)."),
    id_: int = typer.Option(0, "--id", help="Contract id (uint32)."),
    counter: int = typer.Option(0, "--counter", help="Initial counter (uint32)."),
    workchain: Optional[int] = typer.Option(None, "--workchain", help="Workchain (default: config)."),
    value: Optional[str] = _VALUE,
    wait: bool = typer.Option(False, "--wait", help="Poll until the account is active."),
    attempts: Optional[int] = _ATTEMPTS,
    interval: Optional[float] = _INTERVAL,
) -> None:
    """Print the deploy deeplink (empty body plus state init) for a new contract."""
    cfg = _cfg(ctx)
    transport = _transport(ctx)
    contract = CounterContract.create_from_config(
        CounterConfig(id=id_, counter=counter),
        _load_code(code),
        cfg.workchain if workchain is None else workchain,
        transport=transport,
    )
    if contract.is_deployed():
        raise typer.BadParameter(f"contract already deployed at {contract.address}", param_hint="--code")
    link = contract.send_deploy(None, value=_value(value, cfg.deploy_value))
    out: Dict[str, Any] = {"address": contract.address.to_string(test_only=cfg.testnet), "link": link}
    if wait:
        _announce(link)
        out["deployed"] = poll_until(
            contract.is_deployed,
            bool,
            on_attempt=lambda attempt, _: typer.echo(f"waiting… attempt {attempt}, not deployed yet", err=True),
            interval=cfg.poll_interval if interval is None else interval,
            max_attempts=cfg.poll_attempts if attempts is None else attempts,
        )
    _print_json(out)


@app.command("increase")
def increase(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
    by: int = typer.Argument(..., help="Amount to add (uint32)."),
    value: Optional[str] = _VALUE,
    query_id: int = _QUERY_ID,
    wait: bool = _WAIT,
    attempts: Optional[int] = _ATTEMPTS,
    interval: Optional[float] = _INTERVAL,
) -> None:
    """Prepare an Increase message."""
    v = _value(value, _cfg(ctx).message_value)
    _message_command(
        ctx,
        address,
        lambda c: c.send_increase(None, increase_by=by, value=v, query_id=query_id),
        wait=wait,
        attempts=attempts,
        interval=interval,
    )


@app.command("decrease")
def decrease(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
    by: int = typer.Argument(..., help="Amount to subtract (uint32)."),
    value: Optional[str] = _VALUE,
    query_id: int = _QUERY_ID,
    wait: bool = _WAIT,
    attempts: Optional[int] = _ATTEMPTS,
    interval: Optional[float] = _INTERVAL,
) -> None:
    """Prepare a Decrease message (V2 and later)."""
    v = _value(value, _cfg(ctx).message_value)
    _message_command(
        ctx,
        address,
        lambda c: c.send_decrease(None, decrease_by=by, value=v, query_id=query_id),
        wait=wait,
        attempts=attempts,
        interval=interval,
    )


@app.command("upgrade")
def upgrade(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
    code: Path = typer.Option(..., "--code", "-c", help="New compiled code."),
    value: Optional[str] = _VALUE,
    query_id: int = _QUERY_ID,
) -> None:
    """Prepare an UpgradeCode message; the state cell is kept as is."""
    new_code = _load_code(code)
    v = _value(value, _cfg(ctx).message_value)
    _message_command(
        ctx,
        address,
        lambda c: c.send_upgrade(None, code=new_code, value=v, query_id=query_id),
        wait=False,
        attempts=None,
        interval=None,
    )


@app.command("upgrade-all")
def upgrade_all(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
    code: Path = typer.Option(..., "--code", "-c", help="New compiled code."),
    data_hex: Optional[str] = typer.Option(None, "--data-hex", help="New state cell as BOC hex."),
    id_: Optional[int] = typer.Option(None, "--id", help="Build the state from id/counter instead."),
    counter: Optional[int] = typer.Option(None, "--counter", help="Counter for the built state."),
    value: Optional[str] = _VALUE,
    query_id: int = _QUERY_ID,
    wait: bool = _WAIT,
    attempts: Optional[int] = _ATTEMPTS,
    interval: Optional[float] = _INTERVAL,
) -> None:
    """Prepare an UpgradeCodeAndData message replacing code and state."""
    if (data_hex is None) == (id_ is None):
        raise typer.BadParameter("Provide exactly one of --data-hex or --id/--counter")
    if data_hex is not None:
        data = code_from_hex(data_hex)
    else:
        assert id_ is not None
        data = config_to_cell(CounterConfig(id=id_, counter=counter or 0))
    new_code = _load_code(code)
    v = _value(value, _cfg(ctx).message_value)
    _message_command(
        ctx,
        address,
        lambda c: c.send_upgrade_all(None, code=new_code, data=data, value=v, query_id=query_id),
        wait=wait,
        attempts=attempts,
        interval=interval,
    )


@app.command("counter")
def counter(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
) -> None:
    """Read get_counter."""
    typer.echo(str(_open(ctx, address).get_counter()))


@app.command("id")
def id_(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Contract address (raw or user-friendly)."),
) -> None:
    """Read get_id."""
    typer.echo(str(_open(ctx, address).get_id()))


# --- Entrypoints --------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the CLI. Returns an integer exit code.
    """
    try:
        app(prog_name="counter-sdk", standalone_mode=False, args=argv)
        return 0
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        e.show()
        return int(e.exit_code)
    except PollTimeout as e:
        typer.echo(f"error: gave up waiting after {e.attempts} attempts", err=True)
        return 2
    except (CounterSdkError, ValueError) as e:
        typer.echo(f"error: {e}", err=True)
        return 1


def run(argv: Optional[list[str]] = None) -> int:
    """Alias for :func:`main`."""
    return main(argv)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
