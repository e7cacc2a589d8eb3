import hashlib

import pytest

from checkplease.core.digests import SUPPORTED_ALGORITHMS, digest_for
from checkplease.core.errors import UnsupportedAlgorithmError

CONTENT = b"example content for a fixity check"


@pytest.mark.parametrize("name", ["sha256", "sha512", "md5"])
def test_hashlib_algorithms_match_reference(name):
    digest = digest_for(name)
    digest.update(CONTENT)
    assert digest.hexdigest() == hashlib.new(name, CONTENT).hexdigest()


def test_crc32c_matches_check_value():
    # Standard CRC-32C check value for "123456789"
    digest = digest_for("crc32c")
    digest.update(b"123456789")
    assert digest.hexdigest() == "e3069283"


def test_crc32c_of_empty_input():
    assert digest_for("crc32c").hexdigest() == "00000000"


@pytest.mark.parametrize("name", SUPPORTED_ALGORITHMS)
def test_incremental_updates_equal_single_update(name):
    whole = digest_for(name)
    whole.update(CONTENT)

    pieces = digest_for(name)
    for i in range(0, len(CONTENT), 7):
        pieces.update(CONTENT[i : i + 7])

    assert pieces.hexdigest() == whole.hexdigest()


def test_each_call_returns_a_fresh_accumulator():
    first = digest_for("sha256")
    first.update(b"abc")
    assert digest_for("sha256").hexdigest() == hashlib.sha256(b"").hexdigest()


def test_supported_algorithms():
    assert set(SUPPORTED_ALGORITHMS) == {"sha256", "sha512", "md5", "crc32c"}


@pytest.mark.parametrize("name", ["nope", "sha256-and-a-half", "SHA256", ""])
def test_unsupported_algorithm(name):
    with pytest.raises(UnsupportedAlgorithmError) as exc_info:
        digest_for(name)
    assert str(exc_info.value) == f"Unsupported checksum algorithm: {name}"
    assert exc_info.value.algorithm_name == name
