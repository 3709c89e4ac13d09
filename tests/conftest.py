"""Shared fixtures: a ledger on the mock coprocessor with a fixed clock."""

import pytest

from bbforecast.fhe.mock import MockCoprocessor
from bbforecast.fhe.relayer import MockRelayer
from bbforecast.ledger import Ledger

LEDGER = "0x00000000000000000000000000000000000000c0"
DEPLOYER = "0x00000000000000000000000000000000000000d1"
ALICE = "0x00000000000000000000000000000000000000a1"
BOB = "0x00000000000000000000000000000000000000b2"
NOW = 1_700_000_000
HALF = 5 * 10**17  # 0.5 value units at 18 decimals


@pytest.fixture
def coprocessor():
    return MockCoprocessor()


@pytest.fixture
def ledger(coprocessor):
    return Ledger(coprocessor, LEDGER, clock=lambda: NOW)


@pytest.fixture
def relayer(coprocessor, ledger):
    return MockRelayer(coprocessor, ledger.acl, clock=lambda: NOW)


@pytest.fixture
def place(ledger, coprocessor):
    """place(bettor, choice, value, market_id=0): encrypt the choice client-side and bet."""

    def _place(bettor: str, choice: int, value: int, market_id: int = 0) -> None:
        enc = coprocessor.create_encrypted_input(ledger.address, bettor).add32(choice).encrypt()
        ledger.place_bet(market_id, enc.handles[0], enc.input_proof, value, caller=bettor)

    return _place
