import socket
import threading

import pytest

from cabcoin.blockchain import (
    ZERO_HASH,
    Block,
    block_hash,
    last_block_info,
    meets_difficulty,
)
from cabcoin.miner import (
    Job,
    MiningResult,
    find_nonce,
    mine_local,
    mine_pool,
    parse_job,
    parse_response,
)


def test_find_nonce_hash_matches_and_meets_difficulty():
    result = find_nonce(3, 1700000000, "payload", ZERO_HASH, 2)
    assert result.hash == block_hash(3, 1700000000, "payload", ZERO_HASH, result.nonce)
    assert meets_difficulty(result.hash, 2)


def test_find_nonce_returns_smallest_nonce():
    result = find_nonce(1, 42, "abc", ZERO_HASH, 1)
    earlier = [block_hash(1, 42, "abc", ZERO_HASH, n) for n in range(result.nonce)]
    assert not any(meets_difficulty(h, 1) for h in earlier)


def test_find_nonce_difficulty_zero_starts_at_zero():
    result = find_nonce(7, 1, "x", ZERO_HASH, 0)
    assert result.nonce == 0
    assert result.hash == block_hash(7, 1, "x", ZERO_HASH, 0)


def test_mining_result_hashrate_zero_without_hashes():
    assert MiningResult(0, ZERO_HASH, 0.0).hashrate == 0.0


def test_parse_job_fields():
    job = parse_job("JOB 5 1700000000 abc 2\n")
    assert job == Job(5, 1700000000, "abc", 2)


def test_parse_job_truncates_hash_to_64_characters():
    job = parse_job("JOB 1 2 " + "a" * 64 + "7")
    assert job.prev_hash == "a" * 64
    assert job.difficulty == 7


@pytest.mark.parametrize("message", ["HELLO bob\n", "JOB 1 2 abc\n", "JOB x 2 abc 3", ""])
def test_parse_job_rejects_incomplete(message):
    with pytest.raises(ValueError):
        parse_job(message)


def test_parse_response_accept():
    assert parse_response("ACCEPT 3 deadbeef\n") == (True, "deadbeef")


def test_parse_response_accept_without_hash():
    assert parse_response("ACCEPT") == (True, None)


def test_parse_response_reject():
    assert parse_response("REJECT\n") == (False, None)


def test_mine_local_first_block(tmp_path, capsys):
    path = tmp_path / "data" / "chain.dat"
    block = mine_local("hello", path)
    assert block.index == 0
    assert block.prev_hash == ZERO_HASH
    assert block.hash == block.compute_hash()
    assert meets_difficulty(block.hash, 2)
    assert Block.from_line(path.read_text().splitlines()[0]) == block
    assert "Block #0 mined successfully!" in capsys.readouterr().out


def test_mine_local_uses_recorded_prev_hash_of_last_line(tmp_path):
    path = tmp_path / "chain.dat"
    first = mine_local("one", path)
    second = mine_local("two", path)
    assert second.index == first.index + 1
    assert second.prev_hash == first.prev_hash
    assert last_block_info(path) == (second.index, second.prev_hash)
    assert len(path.read_text().splitlines()) == 2


def _fake_pool(reply_for):
    server = socket.create_server(("127.0.0.1", 0))
    received = []

    def run():
        conn, _ = server.accept()
        with conn:
            received.append(conn.recv(512).decode())
            conn.sendall(b"JOB 4 1700000000 " + ZERO_HASH.encode() + b" 2\n")
            solution = conn.recv(512).decode()
            received.append(solution)
            conn.sendall(reply_for(solution).encode())
        server.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return server.getsockname()[1], received, thread


def test_mine_pool_accepted_solution():
    port, received, thread = _fake_pool(lambda soln: "ACCEPT 4 cafe\n")
    result = mine_pool("alice", "127.0.0.1", str(port))
    thread.join(timeout=5)
    assert result == (1, 0)
    assert received[0] == "HELLO alice\n"
    assert received[1].startswith("SOLN ")
    nonce = int(received[1].split()[1])
    digest = block_hash(4, 1700000000, "Mined_by_alice", ZERO_HASH, nonce)
    assert meets_difficulty(digest, 2)


def test_mine_pool_rejected_solution(capsys):
    port, received, thread = _fake_pool(lambda soln: "REJECT\n")
    result = mine_pool("bob", "127.0.0.1", port)
    thread.join(timeout=5)
    assert result == (1, 1)
    assert ">>> Pool menolak solusi" in capsys.readouterr().out


def test_mine_pool_connection_failure():
    probe = socket.create_server(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    with pytest.raises(ConnectionError, match="Gagal koneksi ke pool"):
        mine_pool("carol", "127.0.0.1", port)