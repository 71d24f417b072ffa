"""
Tests for the node RPC endpoints.
"""
import json
import os

import pytest
from fastapi.testclient import TestClient

from stakepool.ledger.rpc import api
from stakepool.ledger.core.chain import PoolChain
from stakepool.protocol.config.params import NETWORKS, UNIT

OWNER = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
WALLET_1 = "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5"
WALLET_2 = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"


# ==================== FIXTURES ====================

def make_chain(tmp_path, network="devnet"):
    with open(os.path.join(str(tmp_path), "genesis.json"), "w") as f:
        json.dump({"owner": OWNER, "reward_pool": 1000 * UNIT, "height": 0}, f)
    return PoolChain(str(tmp_path / "pool.db"), config=NETWORKS[network])


@pytest.fixture
def node(tmp_path, monkeypatch):
    chain = make_chain(tmp_path)
    monkeypatch.setattr(api, "chain", chain)
    yield chain
    chain.close()


@pytest.fixture
def client(node):
    """Create test client"""
    return TestClient(api.app)


def stake(client, sender, amount, lock_blocks=0):
    return client.post("/call", json={
        "sender": sender,
        "call": {"op": "STAKE", "amount": amount, "lock_blocks": lock_blocks},
    })


# ==================== NODE ====================

def test_uninitialized_node_returns_503(monkeypatch):
    monkeypatch.setattr(api, "chain", None)
    response = TestClient(api.app).get("/status")
    assert response.status_code == 503


def test_status(client):
    data = client.get("/status").json()
    assert data["height"] == 0
    assert data["network"] == "devnet"
    assert data["owner"] == OWNER
    assert data["poll_interval_sec"] == 30


# ==================== CALLS ====================

def test_stake_call_accepted(client):
    response = stake(client, WALLET_1, 100 * UNIT, 1008)
    assert response.status_code == 200

    data = response.json()
    assert data["ok"] is True
    assert data["op"] == "STAKE"
    assert data["height"] == 1
    assert data["value"] == {"staked": 100 * UNIT, "lock_until": 1009, "lock_bonus_bps": 50}
    assert data["call_id"]


def test_rejected_call_returns_400_with_code(client):
    response = stake(client, WALLET_1, 100 * UNIT, 10)
    assert response.status_code == 400

    data = response.json()
    assert data["ok"] is False
    assert data["error"] == "InvalidLock"
    assert data["code"] == 105


def test_malformed_call_rejected(client):
    response = client.post("/call", json={"sender": WALLET_1, "call": {"op": "BURN", "amount": 1}})
    assert response.status_code == 422

    response = client.post("/call", json={"sender": WALLET_1, "call": {"op": "STAKE", "amount": -5}})
    assert response.status_code == 422


def test_fund_and_claim_flow(client, node):
    fund = client.post("/call", json={"sender": OWNER, "call": {"op": "FUND_REWARD_POOL", "amount": 10 * UNIT}})
    assert fund.json()["value"] == {"pool_balance": 1010 * UNIT}

    stake(client, WALLET_1, 100 * UNIT)
    client.post("/blocks/mine", json={"count": 200})

    pending = client.get(f"/staker/{WALLET_1}/pending").json()
    assert pending["pending_rewards"] == 1902
    assert pending["height"] == 202

    # The claim runs in the next block (203), one block past the query
    claim = client.post("/call", json={"sender": WALLET_1, "call": {"op": "CLAIM_REWARDS"}})
    assert claim.status_code == 200
    assert claim.json()["height"] == 203
    assert claim.json()["value"]["claimed"] == 1912


def test_call_receipt(client):
    call_id = stake(client, WALLET_1, 100 * UNIT).json()["call_id"]

    receipt = client.get(f"/call/{call_id}/receipt").json()
    assert receipt["status"] == "confirmed"
    assert receipt["block_height"] == 1
    assert receipt["confirmations"] == 1

    assert client.get("/call/deadbeef/receipt").status_code == 404


# ==================== QUERIES ====================

def test_staker_queries(client):
    assert client.get(f"/staker/{WALLET_1}").json() is None

    stake(client, WALLET_1, 100 * UNIT, 4320)
    stake(client, WALLET_2, 300 * UNIT)

    status = client.get(f"/staker/{WALLET_1}").json()
    assert status["index"] == 0
    assert status["amount"] == 100 * UNIT
    assert status["lock_bonus_bps"] == 150
    assert status["is_unlocked"] is False

    assert client.get("/pool/count").json() == {"staker_count": 2}
    assert client.get("/pool/index/1").json() == {"index": 1, "account": WALLET_2}
    assert client.get("/pool/index/5").json()["account"] is None

    stats = client.get("/pool/stats").json()
    assert stats["total_staked"] == 400 * UNIT
    assert stats["reward_pool"] == 1000 * UNIT


def test_leaderboard(client):
    stake(client, WALLET_1, 100 * UNIT)
    stake(client, WALLET_2, 300 * UNIT)

    data = client.get("/leaderboard").json()
    assert data["count"] == 2
    assert [s["account"] for s in data["stakers"]] == [WALLET_2, WALLET_1]

    assert client.get("/leaderboard?limit=1").json()["count"] == 1


def test_apy(client):
    assert client.get("/apy/12960").json() == {"lock_blocks": 12960, "lock_bonus_bps": 300, "total_bps": 350}

    response = client.get("/apy/10")
    assert response.status_code == 400
    assert response.json()["code"] == 105


# ==================== DEVNET HELPERS + METRICS ====================

def test_mine_blocks(client):
    assert client.post("/blocks/mine", json={"count": 5}).json() == {"height": 5}
    assert client.post("/blocks/mine", json={"count": -1}).status_code == 400


def test_mine_blocks_devnet_only(tmp_path, monkeypatch):
    chain = make_chain(tmp_path, network="testnet")
    monkeypatch.setattr(api, "chain", chain)
    try:
        response = TestClient(api.app).post("/blocks/mine", json={"count": 1})
        assert response.status_code == 403
    finally:
        chain.close()


def test_metrics(client):
    stake(client, WALLET_1, 100 * UNIT)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "stakepool_total_staked" in response.text
    assert "stakepool_staker_count 1.0" in response.text
    assert "stakepool_calls_total" in response.text
