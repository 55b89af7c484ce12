#!/usr/bin/env python3
"""
walletpay - interactive terminal client for the wallet API.

Thin front end over WalletClient: log in, check balance and history, send
money. Credentials are kept in ~/.walletpay/auth_tokens.json (see
WALLETPAY_STORAGE_DIR / WALLETPAY_STORAGE_SECRET).
"""

from __future__ import annotations

import asyncio
import getpass
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .client import WalletClient
from .config import get_settings
from .errors import FetchError, TransferFailedError, TransferValidationError, WalletClientError
from .models import EntryType, LedgerEntry
from .observability import setup_logging


AMOUNT_RE = re.compile(r"^\d+(\.\d+)?$")
HISTORY_ROWS = 15

# Terminal colors (minimal)
C = {
    "r": "\033[0m",
    "c": "\033[36m",
    "g": "\033[32m",
    "y": "\033[33m",
    "R": "\033[31m",
    "B": "\033[1m",
}


def say(text: str, cl: str = "") -> None:
    print(f"{cl}{text}{C['r']}")


_executor = ThreadPoolExecutor(max_workers=1)


async def ainput(prompt: str = "") -> str:
    """Blocking input() run off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, input, prompt)


async def apassword(prompt: str = "") -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, getpass.getpass, prompt)


def format_entry(e: LedgerEntry) -> str:
    sign = "+" if e.entry_type is EntryType.CREDIT else "-"
    return f"{e.created_at:%Y-%m-%d %H:%M}  {e.entry_type.value:<6} {sign}{abs(e.amount):>14}  {e.transaction_id}"


# ------------------------
# flows
# ------------------------
async def login_flow(client: WalletClient) -> bool:
    email = (await ainput("email: ")).strip()
    if not email:
        return False
    password = await apassword("password: ")
    ok = await client.login(email, password)
    if ok:
        say(f"welcome, {client.session.session.display_name}", C["g"])
    else:
        say("login failed", C["R"])
    return ok


async def dashboard(client: WalletClient) -> None:
    s = client.session.session
    say(f" walletpay | {s.display_name} ({s.email}) ", C["B"])
    try:
        b = await client.get_balance()
        say(f"balance: {b:,.2f}", C["g"])
    except FetchError as e:
        say(f"balance: --- ({e.message})", C["R"])
    try:
        entries: List[LedgerEntry] = await client.get_ledger()
    except FetchError as e:
        say(f"history unavailable: {e.message}", C["R"])
        return
    if not entries:
        say("no transactions yet", C["y"])
        return
    say("recent transactions:", C["B"] + C["c"])
    for e in entries[:HISTORY_ROWS]:
        say(format_entry(e), C["g"] if e.entry_type is EntryType.CREDIT else C["R"])


async def send_transfer_flow(client: WalletClient) -> Optional[str]:
    """Ask for receiver and amount, confirm, send. Returns the transaction id on success."""
    to = (await ainput("receiver wallet id (or esc): ")).strip()
    if not to or to.lower() == "esc":
        return None
    a_in = (await ainput("amount (or esc): ")).strip()
    if not a_in or a_in.lower() == "esc":
        return None
    if not AMOUNT_RE.match(a_in):
        say("invalid amount!", C["R"])
        return None
    # fresh snapshot before checking the amount against it
    client.balance.invalidate()
    try:
        request = await client.prepare_transfer(to, a_in)
    except TransferValidationError as e:
        say(e.message, C["R"])
        return None
    except TransferFailedError as e:
        say(e.message, C["R"])
        return None
    confirm = (await ainput(f"send {request.amount} to {request.receiver_id}? [y/n]: ")).strip().lower()
    if confirm != "y":
        return None
    while True:
        try:
            outcome = await client.send_transfer(request)
        except TransferFailedError as e:
            say(f"transfer failed: {e.message}", C["R"])
            # same request, same idempotency key
            if (await ainput("retry? [y/n]: ")).strip().lower() == "y":
                continue
            return None
        say(f"transfer {outcome.status}: {outcome.transaction_id}", C["g"])
        return outcome.transaction_id


async def main_loop(client: WalletClient) -> None:
    while True:
        if not client.session.is_authenticated:
            say("[1] login  [0] exit", C["B"])
            cmd = (await ainput("command: ")).strip()
            if cmd == "1":
                await login_flow(client)
            elif cmd in ("0", "q", ""):
                break
            continue
        await dashboard(client)
        say("[1] send  [2] refresh  [3] logout  [0] exit", C["B"])
        cmd = (await ainput("command: ")).strip()
        try:
            if cmd == "1":
                await send_transfer_flow(client)
            elif cmd == "2":
                await client.session.refresh_profile()
            elif cmd == "3":
                client.logout()
            elif cmd in ("0", "q", ""):
                break
        except WalletClientError as e:
            say(e.message, C["R"])


# ------------------------
# Entrypoint
# ------------------------
async def run() -> None:
    settings = get_settings()
    async with WalletClient(settings) as client:
        await main_loop(client)


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    finally:
        _executor.shutdown(wait=False)
        print(C["r"])


if __name__ == "__main__":
    main()
