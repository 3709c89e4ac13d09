"""Mock coprocessor: homomorphic ops, fresh handles, input proofs."""

import pytest

from bbforecast.fhe.handles import FheError, FheType
from bbforecast.fhe.mock import MockCoprocessor

CONTRACT = "0x00000000000000000000000000000000000000c0"
USER = "0x00000000000000000000000000000000000000a1"


@pytest.fixture
def cp():
    return MockCoprocessor()


def test_eq_add_select(cp):
    seven = cp.trivial_encrypt(7, FheType.EUINT32)
    assert cp.reveal(cp.eq(seven, 7)) == 1
    assert cp.reveal(cp.eq(seven, 6)) == 0
    assert cp.eq(seven, 7).fhe_type is FheType.EBOOL

    a = cp.trivial_encrypt(10, FheType.EUINT64)
    b = cp.trivial_encrypt(5, FheType.EUINT64)
    assert cp.reveal(cp.add(a, b)) == 15
    assert cp.reveal(cp.add(a, 1)) == 11

    yes = cp.trivial_encrypt(1, FheType.EBOOL)
    no = cp.trivial_encrypt(0, FheType.EBOOL)
    assert cp.reveal(cp.select(yes, a, b)) == 10
    assert cp.reveal(cp.select(no, a, b)) == 5


def test_every_operation_yields_a_fresh_handle(cp):
    a = cp.trivial_encrypt(3, FheType.EUINT64)
    no = cp.trivial_encrypt(0, FheType.EBOOL)
    same_value = cp.select(no, cp.add(a, 1), a)
    assert same_value != a
    assert cp.reveal(same_value) == cp.reveal(a)
    assert cp.trivial_encrypt(0, FheType.EUINT64) != cp.trivial_encrypt(0, FheType.EUINT64)


def test_add_wraps_at_type_width(cp):
    top = cp.trivial_encrypt(2**64 - 1, FheType.EUINT64)
    assert cp.reveal(cp.add(top, 1)) == 0


def test_type_mismatches_rejected(cp):
    a = cp.trivial_encrypt(1, FheType.EUINT64)
    b = cp.trivial_encrypt(1, FheType.EUINT128)
    with pytest.raises(FheError):
        cp.add(a, b)
    with pytest.raises(FheError):
        cp.select(a, a, a)  # condition must be ebool
    cond = cp.trivial_encrypt(1, FheType.EBOOL)
    with pytest.raises(FheError):
        cp.select(cond, a, b)
    with pytest.raises(FheError):
        cp.trivial_encrypt(2**32, FheType.EUINT32)


def test_encrypted_input_roundtrip_and_binding(cp):
    enc = cp.create_encrypted_input(CONTRACT, USER).add32(2).encrypt()
    handle = enc.handles[0]
    assert handle.fhe_type is FheType.EUINT32
    verified = cp.verify_input(handle, enc.input_proof, contract=CONTRACT, user=USER, fhe_type=FheType.EUINT32)
    assert verified == handle
    assert cp.reveal(verified) == 2

    other_user = "0x00000000000000000000000000000000000000b2"
    with pytest.raises(FheError):
        cp.verify_input(handle, enc.input_proof, contract=CONTRACT, user=other_user, fhe_type=FheType.EUINT32)
    with pytest.raises(FheError):
        cp.verify_input(handle, enc.input_proof[:-1] + bytes([enc.input_proof[-1] ^ 1]), contract=CONTRACT, user=USER, fhe_type=FheType.EUINT32)
    with pytest.raises(FheError):
        cp.verify_input(handle, b"", contract=CONTRACT, user=USER, fhe_type=FheType.EUINT32)


def test_input_proof_covers_only_its_handles(cp):
    enc1 = cp.create_encrypted_input(CONTRACT, USER).add32(0).encrypt()
    enc2 = cp.create_encrypted_input(CONTRACT, USER).add32(1).encrypt()
    with pytest.raises(FheError):
        cp.verify_input(enc2.handles[0], enc1.input_proof, contract=CONTRACT, user=USER, fhe_type=FheType.EUINT32)


def test_input_builder_range_checks(cp):
    builder = cp.create_encrypted_input(CONTRACT, USER)
    with pytest.raises(FheError):
        builder.add32(-1)
    with pytest.raises(FheError):
        builder.add32(2**32)
    with pytest.raises(FheError):
        cp.create_encrypted_input(CONTRACT, USER).encrypt()
    enc = builder.add32(1).add128(2**100).encrypt()
    assert [h.fhe_type for h in enc.handles] == [FheType.EUINT32, FheType.EUINT128]
