"""Proof-of-work mining, either solo against the local chain file or for a pool."""

from __future__ import annotations

import re
import socket
import sys
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from cabcoin.blockchain import (
    CHAIN_FILE,
    DATA_MAX_LEN,
    HASH_LEN,
    Block,
    PathLike,
    append_block,
    block_hash,
    last_block_info,
    meets_difficulty,
)

__all__ = [
    "LOCAL_DIFFICULTY",
    "Job",
    "MiningResult",
    "find_nonce",
    "parse_job",
    "parse_response",
    "mine_local",
    "mine_pool",
]

LOCAL_DIFFICULTY = 2
_RECV_SIZE = 511

_INT = re.compile(r"\s*([+-]?\d+)")
_WORD = re.compile(r"\s*(\S{1,%d})" % HASH_LEN)


@dataclass(frozen=True)
class Job:
    """Work handed out by a pool."""

    index: int
    timestamp: int
    prev_hash: str
    difficulty: int


@dataclass(frozen=True)
class MiningResult:
    """The nonce found by a search, its hash and how long it took."""

    nonce: int
    hash: str
    elapsed: float

    @property
    def hashrate(self) -> float:
        """Average rate in millions of hashes per second."""
        return _rate(self.nonce, self.elapsed)


def _rate(hashes: int, seconds: float) -> float:
    if seconds <= 0:
        return float("inf") if hashes else 0.0
    return hashes / seconds / 1e6


def _status(rate: float, accepted: int, rejected: int) -> str:
    return f"\rHashrate: {rate:.2f} MH/s | Accepted: {accepted} | Rejected: {rejected}"


def _search(
    index: int,
    timestamp: int,
    data: str,
    prev_hash: str,
    difficulty: int,
    progress: Optional[Callable[[float], None]] = None,
) -> MiningResult:
    start = last_report = time.monotonic()
    count = 0
    nonce = 0
    while True:
        digest = block_hash(index, timestamp, data, prev_hash, nonce)
        count += 1
        if meets_difficulty(digest, difficulty):
            return MiningResult(nonce, digest, time.monotonic() - start)
        nonce += 1
        if progress is not None:
            now = time.monotonic()
            if now - last_report >= 1:
                progress(_rate(count, now - last_report))
                count = 0
                last_report = now


def _printer(accepted: int, rejected: int) -> Callable[[float], None]:
    def report(rate: float) -> None:
        print(_status(rate, accepted, rejected), end="", flush=True)

    return report


def find_nonce(index: int, timestamp: int, data: str, prev_hash: str, difficulty: int) -> MiningResult:
    """Smallest nonce from 0 upwards whose block hash meets ``difficulty``."""
    return _search(index, timestamp, data, prev_hash, difficulty)


def parse_job(message: str) -> Job:
    """Parse ``JOB <index> <timestamp> <prev_hash> <difficulty>``.

    The previous hash is read as at most 64 non-blank characters.
    Raises ValueError when the message is not a complete job.
    """
    if not message.startswith("JOB"):
        raise ValueError(f"not a job message: {message!r}")
    pos = 3
    values = []
    for pattern in (_INT, _INT, _WORD, _INT):
        match = pattern.match(message, pos)
        if match is None:
            raise ValueError(f"incomplete job message: {message!r}")
        values.append(match.group(1))
        pos = match.end()
    index, timestamp, prev_hash, difficulty = values
    return Job(int(index), int(timestamp), prev_hash, int(difficulty))


def parse_response(message: str) -> Tuple[bool, Optional[str]]:
    """Parse a pool reply: ``(True, hash)`` for ACCEPT, ``(False, None)`` otherwise.

    The hash is whatever follows ``ACCEPT <index> ``; it is None if absent.
    """
    if not message.startswith("ACCEPT"):
        return False, None
    parts = message.split(" ", 2)
    if len(parts) < 3:
        return True, None
    return True, parts[2].rstrip("\r\n")


def mine_local(data: str, path: PathLike = CHAIN_FILE) -> Block:
    """Mine one block on top of the last line of the chain file and append it.

    The new block takes as its previous hash the previous-hash field recorded
    on the last line of the file. Raises OSError if the block cannot be written.
    """
    last_index, prev_hash = last_block_info(path)
    index = last_index + 1
    timestamp = int(time.time())
    accepted = rejected = 0

    print(f'Starting local mining on data: "{data}"')
    print(f"Target difficulty: {LOCAL_DIFFICULTY} leading zero(s)")

    result = _search(
        index, timestamp, data, prev_hash, LOCAL_DIFFICULTY, _printer(accepted, rejected)
    )
    accepted += 1
    print(_status(result.hashrate, accepted, rejected))

    block = Block(
        index=index,
        timestamp=timestamp,
        data=data,
        prev_hash=prev_hash,
        nonce=result.nonce,
        hash=result.hash,
    )
    append_block(path, block)
    print(f"Block #{index} mined successfully!")
    print(f"Nonce: {result.nonce}\nHash: {result.hash}")
    return block


def _receive(sock: socket.socket) -> str:
    try:
        chunk = sock.recv(_RECV_SIZE)
    except OSError:
        return ""
    return chunk.decode("utf-8", errors="replace")


def mine_pool(miner_name: str, host: str, port) -> Tuple[int, int]:
    """Work for the pool at ``host:port`` until it disconnects.

    Returns the numbers of solutions found and of solutions the pool rejected.
    Raises ConnectionError when no connection can be made.
    """
    try:
        sock = socket.create_connection((host, port))
    except OSError as exc:
        raise ConnectionError(f"Gagal koneksi ke pool {host}:{port}") from exc

    accepted = rejected = 0
    data_field = f"Mined_by_{miner_name}"[: DATA_MAX_LEN - 1]

    with sock:
        sock.sendall(f"HELLO {miner_name}\n".encode("utf-8"))
        print(f"Terhubung ke pool {host}:{port} sebagai miner '{miner_name}'")

        while True:
            message = _receive(sock)
            if not message:
                print("Pool terputus.")
                break
            try:
                job = parse_job(message)
            except ValueError:
                continue

            print(
                f"Menerima JOB: index={job.index}, timestamp={job.timestamp}, "
                f"difficulty={job.difficulty}"
            )
            result = _search(
                job.index,
                job.timestamp,
                data_field,
                job.prev_hash,
                job.difficulty,
                _printer(accepted, rejected),
            )
            accepted += 1
            print(_status(result.hashrate, accepted, rejected))

            sock.sendall(f"SOLN {result.nonce}\n".encode("utf-8"))

            reply = _receive(sock)
            if not reply:
                print("Pool terputus sebelum menerima response.")
                break
            ok, accepted_hash = parse_response(reply)
            if ok:
                print(f">>> Pool menerima blok #{job.index} (hash={accepted_hash or ''})")
            else:
                print(f">>> Pool menolak solusi nonce={result.nonce} untuk blok #{job.index}")
                rejected += 1

    sys.stdout.flush()
    return accepted, rejected