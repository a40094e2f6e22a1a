import string

import pytest

from cabcoin.crypto import sha256_hex
from cabcoin.wallet import (
    Wallet,
    create_wallet,
    derive_address,
    generate_private_key,
    load_wallet,
    save_wallet,
    show_wallet,
)


def test_private_key_format():
    key = generate_private_key()
    assert len(key) == 64
    assert set(key) <= set(string.hexdigits.lower())


def test_private_keys_are_distinct():
    keys = {generate_private_key() for _ in range(20)}
    assert len(keys) == 20


def test_derive_address_is_key_digest():
    key = generate_private_key()
    assert derive_address(key) == sha256_hex(key)
    assert len(derive_address(key)) == 64


def test_save_load_round_trip(tmp_path):
    path = tmp_path / "wallet.dat"
    key = generate_private_key()
    wallet = Wallet(key, derive_address(key))
    save_wallet(path, wallet)
    assert path.read_text() == f"{key}\n{wallet.address}\n"
    assert load_wallet(path) == wallet


def test_load_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_wallet(tmp_path / "absent.dat")


def test_load_incomplete(tmp_path):
    path = tmp_path / "wallet.dat"
    path.write_text("onlyonekey\n")
    with pytest.raises(ValueError):
        load_wallet(path)


def test_create_wallet(tmp_path, capsys):
    path = tmp_path / "wallet.dat"
    wallet = create_wallet(path)
    assert wallet is not None
    assert wallet.address == derive_address(wallet.private_key)
    assert load_wallet(path) == wallet
    out = capsys.readouterr().out
    assert "New wallet created successfully." in out
    assert f"Wallet Address: {wallet.address}" in out


def test_create_wallet_unwritable(tmp_path, capsys):
    result = create_wallet(tmp_path / "missing_dir" / "wallet.dat")
    assert result is None
    assert "Failed to save wallet" in capsys.readouterr().err


def test_show_wallet(tmp_path, capsys):
    path = tmp_path / "wallet.dat"
    wallet = create_wallet(path)
    capsys.readouterr()
    show_wallet(path)
    assert capsys.readouterr().out == f"Wallet Address: {wallet.address}\n"


def test_show_wallet_missing(tmp_path, capsys):
    path = tmp_path / "absent.dat"
    show_wallet(path)
    out = capsys.readouterr().out
    assert f"No wallet found at '{path}'." in out
    assert "createwallet" in out