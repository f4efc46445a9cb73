"""
stacksend - local devnet for the remittance escrow and rate oracle.

Every invocation loads the deployment snapshot from a JSON state file, runs
one operation as the given caller, and writes the snapshot back only if the
operation succeeded.

Global options:
  --state PATH        State file (env STACKSEND_STATE_FILE, default ./stacksend-state.json)
  --log-level TEXT    Python logging level (env STACKSEND_LOG_LEVEL)

Amounts are given in STX ("1.5") and stored in micro-STX. Exchange rates are
fixed-point integers with 8 decimals.

Examples:
  stacksend init --owner SP...
  stacksend fund ST...A 100
  stacksend escrow create --caller ST...A --recipient ST...B --target 10
  stacksend escrow contribute 0 5 --caller ST...C
  stacksend advance 3600
  stacksend oracle update USD-KES 15050000000 --caller SP...
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import typer

from ..config import load_config
from ..deployment import Deployment
from ..errors import StackSendError
from ..units import format_stx, is_valid_stacks_address, parse_stx

STATE_FILE_ENV = "STACKSEND_STATE_FILE"
DEFAULT_STATE_PATH = Path("stacksend-state.json")

log = logging.getLogger("stacksend.cli")

app = typer.Typer(
    name="stacksend",
    help="StackSend devnet: pooled remittance escrow and exchange-rate oracle.",
    no_args_is_help=True,
    add_completion=False,
)
escrow_app = typer.Typer(help="Remittance escrow operations.", no_args_is_help=True)
oracle_app = typer.Typer(help="Exchange-rate oracle operations.", no_args_is_help=True)
app.add_typer(escrow_app, name="escrow")
app.add_typer(oracle_app, name="oracle")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _state_path(ctx: typer.Context) -> Path:
    obj = ctx.find_root().obj or {}
    path = obj.get("state")
    if path is not None:
        return Path(path)
    return Path(os.environ.get(STATE_FILE_ENV, DEFAULT_STATE_PATH))


def _load_state(path: Path) -> Deployment:
    if not path.exists():
        typer.echo(f"State file {path} not found; run `stacksend init` first", err=True)
        raise typer.Exit(code=1)
    data = json.loads(path.read_text(encoding="utf-8"))
    return Deployment.load(data)


def _save_state(path: Path, dep: Deployment) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(dep.dump(), indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _fail(err: StackSendError) -> None:
    typer.echo(json.dumps({"error": err.to_dict()}, sort_keys=True), err=True)
    raise typer.Exit(code=1)


@contextmanager
def _session(ctx: typer.Context, *, save: bool = True) -> Iterator[Deployment]:
    """Load the deployment, yield it, persist it if the body succeeded."""
    path = _state_path(ctx)
    dep = _load_state(path)
    try:
        yield dep
    except StackSendError as e:
        log.debug("command failed: %s", e)
        _fail(e)
    if save:
        _save_state(path, dep)


def _emit(obj: Dict[str, Any]) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _address(value: str, *, what: str = "address") -> str:
    if not is_valid_stacks_address(value):
        raise typer.BadParameter(f"{value!r} is not a valid Stacks {what}")
    return value


def _micro(value: str) -> int:
    try:
        return parse_stx(value)
    except (TypeError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e


def _stx(micro: int) -> Dict[str, Any]:
    return {"micro": micro, "stx": format_stx(micro)}


# ---------------------------------------------------------------------------
# Typer wiring
# ---------------------------------------------------------------------------


@app.callback()
def _configure(
    ctx: typer.Context,
    state: Optional[Path] = typer.Option(
        None,
        "--state",
        help="Deployment state file (default: ./stacksend-state.json)",
        envvar=STATE_FILE_ENV,
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
        envvar="STACKSEND_LOG_LEVEL",
    ),
) -> None:
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise typer.BadParameter(f"unknown log level {log_level!r}", param_hint="--log-level")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"state": state}


@app.command("init")
def init(
    ctx: typer.Context,
    owner: str = typer.Option(..., "--owner", help="Platform owner (fee recipient and admin)"),
    now: int = typer.Option(0, "--now", min=0, help="Initial devnet clock value (seconds)"),
    config: Optional[Path] = typer.Option(
        None, "--config", help="JSON/YAML config file (else STACKSEND_CONFIG_FILE / defaults)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing state file"),
) -> None:
    """Create a fresh deployment and write it to the state file."""
    path = _state_path(ctx)
    if path.exists() and not force:
        typer.echo(f"State file {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(code=1)
    try:
        cfg = load_config(config)
    except (OSError, ValueError) as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1)
    dep = Deployment.create(_address(owner, what="owner"), now=now, config=cfg)
    _save_state(path, dep)
    _emit({"state": str(path), "owner": dep.owner, "now": now, "pool": dep.escrow.pool})


@app.command("fund")
def fund(
    ctx: typer.Context,
    account: str = typer.Argument(..., help="Account to credit"),
    amount: str = typer.Argument(..., help="Amount in STX"),
) -> None:
    """Devnet faucet: credit an account out of thin air."""
    micro = _micro(amount)
    with _session(ctx) as dep:
        balance = dep.host.treasury.credit(_address(account), micro)
    _emit({"account": account, "balance": _stx(balance)})


@app.command("balance")
def balance(
    ctx: typer.Context,
    account: str = typer.Argument(..., help="Account address, or 'pool' for the escrow pool"),
) -> None:
    with _session(ctx, save=False) as dep:
        who = dep.escrow.pool if account == "pool" else _address(account)
        _emit({"account": who, "balance": _stx(dep.host.treasury.balance_of(who))})


@app.command("advance")
def advance(
    ctx: typer.Context,
    seconds: int = typer.Argument(..., min=0, help="Seconds to move the devnet clock forward"),
) -> None:
    with _session(ctx) as dep:
        now = dep.clock.advance(seconds)
    _emit({"now": now})


# ---------------------------------------------------------------------------
# escrow
# ---------------------------------------------------------------------------


@escrow_app.command("create")
def escrow_create(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller", help="Creator address"),
    recipient: str = typer.Option(..., "--recipient", help="Recipient address"),
    target: str = typer.Option(..., "--target", help="Target amount in STX"),
    deadline: Optional[int] = typer.Option(None, "--deadline", min=0, help="Absolute deadline"),
    expires_in: int = typer.Option(
        86_400, "--expires-in", min=1, help="Deadline relative to now, if --deadline is not given"
    ),
    description: str = typer.Option("", "--description"),
    currency_pair: str = typer.Option("", "--pair", help="Display currency pair, e.g. USD-KES"),
) -> None:
    """Open a new remittance."""
    target_micro = _micro(target)
    with _session(ctx) as dep:
        when = deadline if deadline is not None else dep.host.now() + expires_in
        rid = dep.escrow.create_remittance(
            _address(caller),
            _address(recipient, what="recipient"),
            target_micro,
            when,
            description=description,
            currency_pair=currency_pair,
        )
        rem = dep.escrow.get_remittance(rid)
    _emit(rem.to_dict())


@escrow_app.command("contribute")
def escrow_contribute(
    ctx: typer.Context,
    remittance_id: int = typer.Argument(..., min=0),
    amount: str = typer.Argument(..., help="Amount in STX"),
    caller: str = typer.Option(..., "--caller", help="Contributor address"),
) -> None:
    micro = _micro(amount)
    with _session(ctx) as dep:
        rem = dep.escrow.contribute(_address(caller), remittance_id, micro)
    _emit(rem.to_dict())


@escrow_app.command("release")
def escrow_release(
    ctx: typer.Context,
    remittance_id: int = typer.Argument(..., min=0),
    caller: str = typer.Option(..., "--caller", help="Recipient address"),
) -> None:
    with _session(ctx) as dep:
        receipt = dep.escrow.release_funds(_address(caller), remittance_id)
    _emit(receipt.to_dict())


@escrow_app.command("cancel")
def escrow_cancel(
    ctx: typer.Context,
    remittance_id: int = typer.Argument(..., min=0),
    caller: str = typer.Option(..., "--caller", help="Creator address"),
) -> None:
    with _session(ctx) as dep:
        receipt = dep.escrow.cancel_remittance(_address(caller), remittance_id)
    _emit(receipt.to_dict())


@escrow_app.command("show")
def escrow_show(ctx: typer.Context, remittance_id: int = typer.Argument(..., min=0)) -> None:
    """Show a remittance together with its contributor roster."""
    with _session(ctx, save=False) as dep:
        rem = dep.escrow.get_remittance(remittance_id)
        out = rem.to_dict()
        out["contributors"] = list(dep.escrow.get_contributors(remittance_id))
        out["progress_bps"] = rem.progress_bps
        _emit(out)


@escrow_app.command("contribution")
def escrow_contribution(
    ctx: typer.Context,
    remittance_id: int = typer.Argument(..., min=0),
    contributor: str = typer.Argument(...),
) -> None:
    with _session(ctx, save=False) as dep:
        c = dep.escrow.get_contribution(remittance_id, contributor)
        _emit({"contribution": c.to_dict() if c is not None else None})


@escrow_app.command("pause")
def escrow_pause(ctx: typer.Context, caller: str = typer.Option(..., "--caller")) -> None:
    with _session(ctx) as dep:
        dep.escrow.pause(caller)
    _emit({"paused": True})


@escrow_app.command("unpause")
def escrow_unpause(ctx: typer.Context, caller: str = typer.Option(..., "--caller")) -> None:
    with _session(ctx) as dep:
        dep.escrow.unpause(caller)
    _emit({"paused": False})


@escrow_app.command("set-fee")
def escrow_set_fee(
    ctx: typer.Context,
    fee_bps: int = typer.Argument(..., help="New platform fee in basis points"),
    caller: str = typer.Option(..., "--caller"),
) -> None:
    with _session(ctx) as dep:
        dep.escrow.update_platform_fee(caller, fee_bps)
    _emit({"fee_bps": fee_bps})


@escrow_app.command("emergency-withdraw")
def escrow_emergency_withdraw(
    ctx: typer.Context,
    amount: str = typer.Argument(..., help="Amount in STX"),
    recipient: str = typer.Argument(...),
    caller: str = typer.Option(..., "--caller"),
) -> None:
    """Owner escape hatch: move funds out of the shared pool."""
    micro = _micro(amount)
    with _session(ctx) as dep:
        dep.escrow.emergency_withdraw(caller, micro, _address(recipient, what="recipient"))
        pool = dep.escrow.pool_balance()
    _emit({"withdrawn": _stx(micro), "recipient": recipient, "pool_balance": _stx(pool)})


# ---------------------------------------------------------------------------
# oracle
# ---------------------------------------------------------------------------


@oracle_app.command("update")
def oracle_update(
    ctx: typer.Context,
    pair: str = typer.Argument(..., help="Currency pair, e.g. USD-KES"),
    rate: int = typer.Argument(..., help="Rate as an 8-decimal fixed-point integer"),
    caller: str = typer.Option(..., "--caller"),
) -> None:
    with _session(ctx) as dep:
        quote = dep.oracle.update_exchange_rate(caller, pair, rate)
    _emit(quote.to_dict())


@oracle_app.command("get")
def oracle_get(
    ctx: typer.Context,
    pair: str = typer.Argument(...),
    fresh: bool = typer.Option(False, "--fresh", help="Reject quotes older than the maximum age"),
) -> None:
    with _session(ctx, save=False) as dep:
        quote = dep.oracle.get_fresh_exchange_rate(pair) if fresh else dep.oracle.get_exchange_rate(pair)
        out = quote.to_dict()
        out["decimals"] = dep.oracle.get_rate_decimals()
        out["age"] = quote.age(dep.host.now())
        _emit(out)


@oracle_app.command("add-updater")
def oracle_add_updater(
    ctx: typer.Context,
    identity: str = typer.Argument(...),
    caller: str = typer.Option(..., "--caller"),
) -> None:
    with _session(ctx) as dep:
        dep.oracle.add_authorized_updater(caller, _address(identity, what="updater"))
    _emit({"updater": identity, "authorized": True})


@oracle_app.command("remove-updater")
def oracle_remove_updater(
    ctx: typer.Context,
    identity: str = typer.Argument(...),
    caller: str = typer.Option(..., "--caller"),
) -> None:
    with _session(ctx) as dep:
        dep.oracle.remove_authorized_updater(caller, identity)
    _emit({"updater": identity, "authorized": False})


@oracle_app.command("pause")
def oracle_pause(ctx: typer.Context, caller: str = typer.Option(..., "--caller")) -> None:
    with _session(ctx) as dep:
        dep.oracle.pause_oracle(caller)
    _emit({"active": False})


@oracle_app.command("unpause")
def oracle_unpause(ctx: typer.Context, caller: str = typer.Option(..., "--caller")) -> None:
    with _session(ctx) as dep:
        dep.oracle.unpause_oracle(caller)
    _emit({"active": True})


@oracle_app.command("authorized")
def oracle_authorized(ctx: typer.Context, identity: str = typer.Argument(...)) -> None:
    with _session(ctx, save=False) as dep:
        _emit({"identity": identity, "authorized": dep.oracle.is_authorized(identity)})


def main() -> None:  # pragma: no cover - console entry
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
