"""Command-line entry point for the blockchain, wallet and miner."""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from cabcoin.blockchain import CHAIN_FILE, Blockchain, InvalidChainError
from cabcoin.miner import mine_local, mine_pool
from cabcoin.wallet import WALLET_FILE, create_wallet, show_wallet

__all__ = ["main"]

USAGE = """\
Usage: cabcoin <command> [args]
Commands:
  createwallet                   Generate a new wallet
  showwallet                     Display existing wallet address
  mine <data>                    Solo mining (tanpa pool)
  minepool <name> <host> <port>  Pool mining
  showchain                      Display the entire blockchain
  validate                       Validate blockchain integrity"""


def _open_chain() -> Optional[Blockchain]:
    chain = Blockchain(CHAIN_FILE)
    try:
        genesis = chain.init()
    except OSError:
        print(f"Error: Gagal menyimpan genesis block ke '{CHAIN_FILE}'", file=sys.stderr)
        return None
    if genesis is not None:
        print(f"Genesis block dibuat (index: 0, hash: {genesis.hash})")
    else:
        print(f"Blockchain dimuat, jumlah block: {len(chain)}")
    return chain


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one command; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)

    chain = _open_chain()
    if chain is None:
        return 1

    if not args:
        print(USAGE)
        return 0

    command = args[0]
    if command == "createwallet":
        return 0 if create_wallet(WALLET_FILE) is not None else 1
    if command == "showwallet":
        show_wallet(WALLET_FILE)
    elif command == "mine":
        if len(args) != 2:
            print('Usage: cabcoin mine "<data>"')
        else:
            try:
                mine_local(args[1], CHAIN_FILE)
            except OSError:
                print(f"Error: gagal menulis blok baru ke '{CHAIN_FILE}'", file=sys.stderr)
                return 1
    elif command == "minepool":
        if len(args) != 4:
            print("Usage: cabcoin minepool <miner_name> <host> <port>")
        else:
            try:
                mine_pool(args[1], args[2], args[3])
            except ConnectionError as exc:
                print(exc, file=sys.stderr)
                return 1
    elif command == "showchain":
        print(chain.format(), end="")
    elif command == "validate":
        try:
            chain.check()
        except InvalidChainError as exc:
            print(exc)
            print("Blockchain TIDAK valid!")
        else:
            print("Blockchain valid.")
    else:
        print(f"Unknown command: {command}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())