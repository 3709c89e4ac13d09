"""Mock relayer: user decryption gated by signature, validity window and grants."""

import pytest

from bbforecast.fhe.relayer import (
    SECONDS_PER_DAY,
    AlreadyEnrolled,
    DecryptionDenied,
    InvalidAuthorization,
    UserDecryptRequest,
    sign_request,
)
from tests.conftest import ALICE, BOB, DEPLOYER, HALF, LEDGER, NOW


def _request(handles, user, **overrides):
    fields = dict(
        handles=[h.hex for h in handles],
        contract_address=LEDGER,
        user_address=user,
        start_timestamp=NOW,
        duration_days=1,
    )
    fields.update(overrides)
    return UserDecryptRequest(**fields)


def test_creator_decrypts_initial_totals(ledger, relayer):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    votes, stake = ledger.get_option_totals(0, 0)
    values = relayer.decrypt_for(DEPLOYER, LEDGER, [votes, stake])
    assert values == {votes.hex: 0, stake.hex: 0}


def test_bettor_decrypts_totals_and_own_bet(ledger, relayer, place):
    ledger.create_market("Favorite color", ["Red", "Blue", "Green"], caller=DEPLOYER)
    place(ALICE, 1, HALF)
    totals = [ledger.get_option_totals(0, i) for i in range(3)]
    flat = [h for pair in totals for h in pair]
    values = relayer.decrypt_for(ALICE, LEDGER, flat)
    assert [(values[v.hex], values[s.hex]) for v, s in totals] == [(0, 0), (1, HALF), (0, 0)]

    bet = ledger.get_bet(0, ALICE, 0)
    values = relayer.decrypt_for(ALICE, LEDGER, [bet.selection, bet.stake])
    assert values == {bet.selection.hex: 1, bet.stake.hex: HALF}


def test_identity_without_grant_is_denied(ledger, relayer, place):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    place(ALICE, 0, 10)
    bet = ledger.get_bet(0, ALICE, 0)
    with pytest.raises(DecryptionDenied):
        relayer.decrypt_for(BOB, LEDGER, [bet.selection])
    # creator's grants were on the replaced handles, not the new ones
    with pytest.raises(DecryptionDenied):
        relayer.decrypt_for(DEPLOYER, LEDGER, list(ledger.get_option_totals(0, 0)))


def test_contract_must_hold_grant_too(ledger, relayer, place):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    place(ALICE, 0, 10)
    bet = ledger.get_bet(0, ALICE, 0)
    other_contract = "0x00000000000000000000000000000000000000ff"
    with pytest.raises(DecryptionDenied):
        relayer.decrypt_for(ALICE, other_contract, [bet.selection])


def test_signature_and_window_checks(ledger, relayer):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    votes, _ = ledger.get_option_totals(0, 0)
    key = relayer.enroll(DEPLOYER)

    req = _request([votes], DEPLOYER)
    assert relayer.user_decrypt(req, sign_request(key, req)) == {votes.hex: 0}

    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(req, "00" * 32)
    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(req, sign_request(relayer.enroll(BOB), req))

    expired = _request([votes], DEPLOYER, start_timestamp=NOW - 2 * SECONDS_PER_DAY)
    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(expired, sign_request(key, expired))

    future = _request([votes], DEPLOYER, start_timestamp=NOW + 60)
    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(future, sign_request(key, future))

    too_long = _request([votes], DEPLOYER, duration_days=relayer.max_duration_days + 1)
    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(too_long, sign_request(key, too_long))


def test_unenrolled_requester_rejected(ledger, relayer):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    votes, _ = ledger.get_option_totals(0, 0)
    req = _request([votes], DEPLOYER)
    with pytest.raises(InvalidAuthorization):
        relayer.user_decrypt(req, sign_request(b"k" * 32, req))


def test_signing_key_is_issued_once(relayer):
    key = relayer.enroll(ALICE)
    assert len(key) == 32
    with pytest.raises(AlreadyEnrolled):
        relayer.enroll(ALICE.upper().replace("0X", "0x"))


def test_decrypt_for_reuses_issued_key(ledger, relayer):
    ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    votes, _ = ledger.get_option_totals(0, 0)
    relayer.enroll(DEPLOYER)
    assert relayer.decrypt_for(DEPLOYER, LEDGER, [votes]) == {votes.hex: 0}
    assert relayer.decrypt_for(DEPLOYER, LEDGER, [votes]) == {votes.hex: 0}
