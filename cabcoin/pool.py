"""A mining pool server that hands out jobs and records accepted blocks."""

from __future__ import annotations

import re
import socketserver
import sys
import threading
import time
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Tuple

from cabcoin.blockchain import (
    CHAIN_FILE,
    DATA_MAX_LEN,
    DIFFICULTY,
    Block,
    PathLike,
    append_block,
    block_hash,
    create_genesis_block,
    last_block_info,
    meets_difficulty,
)

__all__ = [
    "BACKLOG",
    "DEFAULT_PORT",
    "MAX_NAME_LEN",
    "PoolServer",
    "init_chain_if_needed",
    "parse_hello",
    "parse_solution",
    "handle_client",
    "main",
]

BACKLOG = 10
DEFAULT_PORT = "3333"
MAX_NAME_LEN = 127
_LINE_LIMIT = 511

_NAME = re.compile(r"\s*(\S{1,%d})" % MAX_NAME_LEN)
_INT = re.compile(r"\s*([+-]?\d+)")

_CHAIN_LOCK = threading.Lock()


def parse_hello(message: str) -> str:
    """Return the miner name from ``HELLO <name>`` (at most 127 characters).

    Raises ValueError when the message is not a greeting with a name.
    """
    if not message.startswith("HELLO"):
        raise ValueError(f"not a greeting: {message!r}")
    match = _NAME.match(message, 5)
    if match is None:
        raise ValueError(f"greeting without a name: {message!r}")
    return match.group(1)


def parse_solution(message: str) -> int:
    """Return the nonce from ``SOLN <nonce>``; raise ValueError otherwise."""
    if not message.startswith("SOLN"):
        raise ValueError(f"not a solution: {message!r}")
    match = _INT.match(message, 4)
    if match is None:
        raise ValueError(f"solution without a nonce: {message!r}")
    return int(match.group(1))


def init_chain_if_needed(path: PathLike = CHAIN_FILE) -> Optional[Block]:
    """Create the chain file with a genesis block if it does not exist.

    Returns the new genesis block, or None when the file was already there.
    Raises OSError if the file cannot be written.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        print("Blockchain (chain.dat) sudah ada, lanjutkan.")
        return None
    genesis = create_genesis_block()
    target.write_text(genesis.to_line(), encoding="utf-8")
    print(f"Genesis block dibuat, hash: {genesis.hash}")
    return genesis


def _read_message(reader: BinaryIO) -> str:
    try:
        raw = reader.readline(_LINE_LIMIT)
    except OSError:
        return ""
    return raw.decode("utf-8", errors="replace")


def _send(writer: BinaryIO, text: str) -> None:
    writer.write(text.encode("utf-8"))
    writer.flush()


def handle_client(reader: BinaryIO, writer: BinaryIO, chain_path: PathLike = CHAIN_FILE) -> int:
    """Serve one miner over binary streams until it disconnects.

    Returns the number of blocks the miner got accepted.
    """
    try:
        miner_name = parse_hello(_read_message(reader))
    except ValueError:
        return 0
    print(f"Miner '{miner_name}' terkoneksi.")
    data_field = f"Mined_by_{miner_name}"[: DATA_MAX_LEN - 1]
    accepted = 0

    while True:
        last_index, last_hash = last_block_info(chain_path)
        index = last_index + 1
        timestamp = int(time.time())

        try:
            _send(writer, f"JOB {index} {timestamp} {last_hash} {DIFFICULTY}\n")
        except OSError as exc:
            print(f"send JOB: {exc}", file=sys.stderr)
            break

        message = _read_message(reader)
        if not message:
            break
        try:
            nonce = parse_solution(message)
        except ValueError:
            continue

        computed = block_hash(index, timestamp, data_field, last_hash, nonce)
        try:
            if meets_difficulty(computed, DIFFICULTY):
                block = Block(
                    index=index,
                    timestamp=timestamp,
                    data=data_field,
                    prev_hash=last_hash,
                    nonce=nonce,
                    hash=computed,
                )
                try:
                    with _CHAIN_LOCK:
                        append_block(chain_path, block)
                except OSError as exc:
                    print(f"append_block_to_file: {exc}", file=sys.stderr)
                    break
                _send(writer, f"ACCEPT {index} {computed}\n")
                accepted += 1
                print(
                    f"Miner '{miner_name}' berhasil menambang block #{index} "
                    f"(hash: {computed})"
                )
            else:
                _send(writer, "REJECT\n")
        except OSError:
            break

    print(f"Miner '{miner_name}' terputus.")
    return accepted


class _Handler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        handle_client(self.rfile, self.wfile, self.server.chain_path)


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    request_queue_size = BACKLOG

    def __init__(self, address: Tuple[str, int], chain_path: PathLike):
        self.chain_path = chain_path
        super().__init__(address, _Handler)


class PoolServer:
    """A TCP pool server; every miner is served on its own thread."""

    def __init__(self, port=DEFAULT_PORT, chain_path: PathLike = CHAIN_FILE):
        self.chain_path = chain_path
        self._server = _TCPServer(("", int(port)), chain_path)
        self._serving = threading.Event()

    @property
    def server_address(self) -> Tuple[str, int]:
        """The host and port the server is bound to."""
        host, port = self._server.server_address[:2]
        return host, port

    def serve_forever(self) -> None:
        """Accept miners until :meth:`shutdown` is called."""
        self._serving.set()
        try:
            self._server.serve_forever()
        finally:
            self._serving.clear()

    def shutdown(self) -> None:
        """Stop serving and close the listening socket."""
        if self._serving.is_set():
            self._server.shutdown()
        self._server.server_close()

    def __enter__(self) -> "PoolServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the pool server; an optional single argument is the port."""
    args = list(sys.argv[1:] if argv is None else argv)
    port = args[0] if len(args) == 1 else DEFAULT_PORT

    try:
        init_chain_if_needed(CHAIN_FILE)
    except OSError as exc:
        print(f"Error menulis genesis ke chain.dat: {exc}", file=sys.stderr)
        return 1

    try:
        port_number = int(port)
    except ValueError:
        print(f"getaddrinfo: invalid port {port!r}", file=sys.stderr)
        return 1

    try:
        server = PoolServer(port_number, CHAIN_FILE)
    except (OSError, OverflowError):
        print(f"pool: gagal bind ke port {port}", file=sys.stderr)
        return 2

    print(f"Pool server berjalan di port {port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server._server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())