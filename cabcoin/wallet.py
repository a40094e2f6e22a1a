"""Wallets: a random private key and the address derived from it."""

from __future__ import annotations

import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cabcoin.crypto import sha256_hex

__all__ = [
    "WALLET_FILE",
    "Wallet",
    "generate_private_key",
    "derive_address",
    "save_wallet",
    "load_wallet",
    "create_wallet",
    "show_wallet",
]

WALLET_FILE = "wallet.dat"

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class Wallet:
    """A private key with its address."""

    private_key: str
    address: str


def generate_private_key() -> str:
    """Random 32-byte private key as 64 lowercase hex characters."""
    return secrets.token_hex(32)


def derive_address(private_key: str) -> str:
    """Address of a private key: the SHA-256 hex digest of the key text."""
    return sha256_hex(private_key)


def save_wallet(path: PathLike, wallet: Wallet) -> None:
    """Write the private key and address on two lines."""
    Path(path).write_text(f"{wallet.private_key}\n{wallet.address}\n", encoding="utf-8")


def load_wallet(path: PathLike) -> Wallet:
    """Read a wallet file; raise ValueError if it has fewer than two lines."""
    with Path(path).open("r", encoding="utf-8") as handle:
        key_line = handle.readline()
        address_line = handle.readline()
    if not key_line or not address_line:
        raise ValueError(f"incomplete wallet file: {path}")
    return Wallet(key_line.rstrip("\n"), address_line.rstrip("\n"))


def create_wallet(path: PathLike = WALLET_FILE) -> Optional[Wallet]:
    """Generate and save a new wallet, reporting the address.

    Returns the wallet, or None if it could not be saved.
    """
    private_key = generate_private_key()
    wallet = Wallet(private_key, derive_address(private_key))
    try:
        save_wallet(path, wallet)
    except OSError:
        print(f"Error: Failed to save wallet to '{path}'.", file=sys.stderr)
        return None
    print("New wallet created successfully.")
    print(f"Wallet Address: {wallet.address}")
    return wallet


def show_wallet(path: PathLike = WALLET_FILE) -> None:
    """Print the address stored at ``path``, or how to create a wallet."""
    try:
        wallet = load_wallet(path)
    except (OSError, ValueError):
        print(f"No wallet found at '{path}'.")
        print("Use the 'createwallet' command to generate a new wallet.")
        return
    print(f"Wallet Address: {wallet.address}")