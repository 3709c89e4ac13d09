"""HTTP host: call surface, query surface and mock relayer endpoints."""

import threading
import time

import pytest
from fastapi.testclient import TestClient

from bbforecast.api import main as api_main
from bbforecast.fhe.relayer import UserDecryptRequest, sign_request
from bbforecast.service import LedgerService
from tests.conftest import ALICE, BOB, DEPLOYER, HALF, LEDGER


@pytest.fixture
def client():
    service = LedgerService(LEDGER)
    api_main.set_service(service)
    with TestClient(api_main.app) as c:
        c.keys = {}
        yield c
    api_main.set_service(None)
    service.close()


def _create(client, name="Favorite color", labels=("Red", "Blue", "Green")):
    r = client.post("/markets", json={"name": name, "option_labels": list(labels)}, headers={"X-Identity": DEPLOYER})
    assert r.status_code == 200, r.text
    return r.json()["market_id"]


def _bet(client, market_id, bettor, choice, value):
    enc = client.post("/inputs", json={"option_index": choice}, headers={"X-Identity": bettor}).json()
    return client.post(
        f"/markets/{market_id}/bets",
        json={"encrypted_selection": enc["handles"][0], "input_proof": enc["input_proof"], "value": value},
        headers={"X-Identity": bettor},
    )


def _key(client, identity):
    """Enroll once per identity; the relayer never hands a key out twice."""
    if identity not in client.keys:
        r = client.post("/relayer/enroll", headers={"X-Identity": identity})
        client.keys[identity] = bytes.fromhex(r.json()["key"])
    return client.keys[identity]


def _decrypt(client, identity, handles):
    key = _key(client, identity)
    req = UserDecryptRequest(
        handles=handles,
        contract_address=LEDGER,
        user_address=identity,
        start_timestamp=int(time.time()) - 5,
        duration_days=1,
    )
    return client.post("/decrypt", json={"request": req.model_dump(), "signature": sign_request(key, req)})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "ledger_address": LEDGER}


def test_market_lifecycle(client):
    assert _create(client) == 0
    r = client.get("/markets")
    assert r.json()["total"] == 1
    assert r.json()["markets"][0]["option_labels"] == ["Red", "Blue", "Green"]

    detail = client.get("/markets/0").json()
    assert detail["name"] == "Favorite color"
    assert detail["option_count"] == 3
    assert detail["created_at"] > 0


def test_bet_and_decrypt_flow(client):
    _create(client)
    r = _bet(client, 0, ALICE, 1, HALF)
    assert r.status_code == 201, r.text
    assert r.json() == {"market_id": 0, "bettor": ALICE, "bet_count": 1}

    handles = []
    for i in range(3):
        opt = client.get(f"/markets/0/options/{i}").json()
        handles.append((opt["votes_handle"], opt["stake_handle"]))
    r = _decrypt(client, ALICE, [h for pair in handles for h in pair])
    assert r.status_code == 200, r.text
    values = r.json()["values"]
    assert [(values[v], values[s]) for v, s in handles] == [(0, 0), (1, HALF), (0, 0)]

    bet = client.get(f"/markets/0/bets/{ALICE}/0").json()
    assert bet["placed_at"] > 0
    values = _decrypt(client, ALICE, [bet["selection_handle"], bet["stake_handle"]]).json()["values"]
    assert values == {bet["selection_handle"]: 1, bet["stake_handle"]: HALF}
    assert client.get(f"/markets/0/bets/{ALICE}").json()["bet_count"] == 1


def test_decrypt_without_grant_is_forbidden(client):
    _create(client)
    _bet(client, 0, ALICE, 0, 10)
    bet = client.get(f"/markets/0/bets/{ALICE}/0").json()
    r = _decrypt(client, BOB, [bet["selection_handle"]])
    assert r.status_code == 403
    assert r.json()["code"] == "decryption_denied"


def test_bad_signature_is_unauthorized(client):
    _create(client)
    votes = client.get("/markets/0/options/0").json()["votes_handle"]
    client.post("/relayer/enroll", headers={"X-Identity": DEPLOYER})
    req = UserDecryptRequest(
        handles=[votes], contract_address=LEDGER, user_address=DEPLOYER, start_timestamp=int(time.time()), duration_days=1
    )
    r = client.post("/decrypt", json={"request": req.model_dump(), "signature": "00"})
    assert r.status_code == 401
    assert r.json()["code"] == "invalid_authorization"


@pytest.mark.parametrize(
    "body, code",
    [
        ({"name": "Q", "option_labels": ["a"]}, "invalid_option_count"),
        ({"name": "Q", "option_labels": ["a", "b", "c", "d", "e"]}, "invalid_option_count"),
        ({"name": "", "option_labels": ["a", "b"]}, "invalid_name"),
        ({"name": "Q", "option_labels": ["a", ""]}, "empty_label"),
    ],
)
def test_create_market_validation(client, body, code):
    r = client.post("/markets", json=body, headers={"X-Identity": DEPLOYER})
    assert r.status_code == 400
    assert r.json()["code"] == code
    assert client.get("/markets").json()["total"] == 0


def test_bet_errors(client):
    _create(client)
    r = _bet(client, 0, ALICE, 0, 0)
    assert (r.status_code, r.json()["code"]) == (400, "zero_stake")
    r = _bet(client, 0, ALICE, 0, 2**128)
    assert (r.status_code, r.json()["code"]) == (400, "stake_overflow")
    r = _bet(client, 4, ALICE, 0, 1)
    assert (r.status_code, r.json()["code"]) == (404, "unknown_market")

    enc = client.post("/inputs", json={"option_index": 0}, headers={"X-Identity": BOB}).json()
    r = client.post(
        "/markets/0/bets",
        json={"encrypted_selection": enc["handles"][0], "input_proof": enc["input_proof"], "value": 1},
        headers={"X-Identity": ALICE},
    )
    assert (r.status_code, r.json()["code"]) == (400, "invalid_selection_proof")
    r = client.post(
        "/markets/0/bets",
        json={"encrypted_selection": enc["handles"][0], "input_proof": "zz", "value": 1},
        headers={"X-Identity": BOB},
    )
    assert (r.status_code, r.json()["code"]) == (400, "invalid_selection_proof")
    assert client.get(f"/markets/0/bets/{ALICE}").json()["bet_count"] == 0


def test_lookup_errors(client):
    assert client.get("/markets/0").json()["code"] == "unknown_market"
    _create(client)
    r = client.get("/markets/0/options/3")
    assert (r.status_code, r.json()["code"]) == (404, "option_out_of_range")
    r = client.get(f"/markets/0/bets/{ALICE}/0")
    assert (r.status_code, r.json()["code"]) == (404, "bet_out_of_range")


def test_missing_identity_header(client):
    r = client.post("/markets", json={"name": "Q", "option_labels": ["a", "b"]})
    assert r.status_code == 422


def test_events_stats_without_persistence(client):
    r = client.get("/events/stats")
    assert r.status_code == 404
    assert r.json()["code"] == "no_event_log"


def test_enroll_issues_key_once(client):
    r = client.post("/relayer/enroll", headers={"X-Identity": ALICE})
    assert r.status_code == 200
    r = client.post("/relayer/enroll", headers={"X-Identity": ALICE.upper().replace("0X", "0x")})
    assert (r.status_code, r.json()["code"]) == (409, "already_enrolled")
    assert "key" not in r.json()


def test_reads_wait_for_in_flight_commit():
    service = LedgerService(LEDGER)
    results = []
    reader = threading.Thread(target=lambda: results.append(service.read(lambda ledger: ledger.market_count())))
    with service._lock:
        # a commit is in progress: create the market directly on the ledger while holding the lock
        reader.start()
        reader.join(timeout=0.2)
        assert reader.is_alive()
        service.ledger.create_market("Q", ["a", "b"], caller=DEPLOYER)
    reader.join(timeout=5)
    assert results == [1]
    service.close()
