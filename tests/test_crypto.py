import string

import pytest

from cabcoin.crypto import sha256_hex


def test_empty_string_vector():
    assert sha256_hex("") == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_abc_vector():
    assert sha256_hex("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


@pytest.mark.parametrize("text", ["", "a", "Genesis Block", "x" * 1000, "ünïcode"])
def test_output_is_64_lowercase_hex(text):
    digest = sha256_hex(text)
    assert len(digest) == 64
    assert set(digest) <= set(string.hexdigits.lower())


def test_deterministic_and_sensitive():
    assert sha256_hex("block") == sha256_hex("block")
    assert sha256_hex("block") != sha256_hex("Block")