from fastapi import FastAPI, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from typing import Optional
from ...protocol.types.call import CallRequest
from ...protocol.types.common import StakingError
from ..core.chain import PoolChain
import logging

logger = logging.getLogger(__name__)

app = FastAPI(title="Stakepool Node RPC")

# Enable CORS for dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
chain: Optional[PoolChain] = None


def _require_chain() -> PoolChain:
    if not chain:
        raise HTTPException(status_code=503, detail="Node not initialized")
    return chain


@app.get("/status")
async def get_status():
    node = _require_chain()
    return {
        "height": node.height,
        "network": node.config.network_id,
        "pool_id": node.config.pool_id,
        "owner": node.pool.state.owner,
        "poll_interval_sec": node.config.poll_interval_sec,
    }

# ═══════════════════════════════════════════════════════════════════
# READ-ONLY QUERIES
# ═══════════════════════════════════════════════════════════════════

@app.get("/pool/stats")
async def get_pool_stats():
    return _require_chain().get_pool_stats()

@app.get("/pool/count")
async def get_staker_count():
    return {"staker_count": _require_chain().get_staker_count()}

@app.get("/pool/index/{index}")
async def get_staker_at_index(index: int):
    """Account at an enumeration slot, or null past the end."""
    return {"index": index, "account": _require_chain().get_staker_at_index(index)}

@app.get("/staker/{account}")
async def get_staker_status(account: str):
    """Staker view at the current height, or null when the account has no position."""
    return _require_chain().get_staker_status(account)

@app.get("/staker/{account}/pending")
async def get_pending_rewards(account: str):
    node = _require_chain()
    return {"account": account, "pending_rewards": node.get_pending_rewards(account), "height": node.height}

@app.get("/apy/{lock_blocks}")
async def estimate_apy(lock_blocks: int):
    node = _require_chain()
    try:
        return node.estimate_apy(lock_blocks)
    except StakingError as e:
        return JSONResponse(status_code=400, content={"error": e.kind, "code": e.code, "message": e.message})

@app.get("/leaderboard")
async def get_leaderboard(limit: Optional[int] = None):
    """Live stakers within the first `limit` slots (default 50), largest first."""
    node = _require_chain()
    entries = node.leaderboard(limit)
    return {"height": node.height, "count": len(entries), "stakers": entries}

# ═══════════════════════════════════════════════════════════════════
# CALLS
# ═══════════════════════════════════════════════════════════════════

@app.post("/call")
async def submit_call(request: CallRequest):
    node = _require_chain()
    result = node.submit(request)
    if not result.ok:
        return JSONResponse(status_code=400, content=result.model_dump(mode="json"))
    return result

@app.get("/call/{call_id}/receipt")
async def get_call_receipt(call_id: str):
    """Returns call status: pending, confirmed, or failed."""
    node = _require_chain()
    receipt = node.receipts.get(call_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Call not found")

    response = receipt.to_dict()
    confirmations = node.receipts.get_confirmations(call_id, node.height)
    if confirmations is not None:
        response["confirmations"] = confirmations
    return response

@app.post("/blocks/mine")
async def mine_blocks(count: int = Body(1, embed=True)):
    """Advances the height without calls (devnet only)."""
    node = _require_chain()
    if node.config.network_id != "devnet":
        raise HTTPException(status_code=403, detail="Mining empty blocks is only available on devnet")
    if count < 0:
        raise HTTPException(status_code=400, detail="count must be non-negative")
    return {"height": node.mine_empty_blocks(count)}

@app.get("/metrics")
async def get_metrics():
    """Prometheus metrics endpoint."""
    from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
    from ..observability.metrics import metrics_registry, update_metrics

    update_metrics(_require_chain())

    return Response(
        content=generate_latest(metrics_registry),
        media_type=CONTENT_TYPE_LATEST
    )

def start_rpc_server(chain_instance: PoolChain, host: str = "0.0.0.0", port: int = 8000):
    global chain
    chain = chain_instance
    import uvicorn
    uvicorn.run(app, host=host, port=port)
