# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Exports pool metrics in Prometheus format.

Metrics:
- Block height
- Calls processed by operation, rejections by error kind
- Pending call receipts
- Pool accounting (total staked, reward pool, distributed, staker count)
"""

from prometheus_client import Counter, Gauge, CollectorRegistry

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# NODE METRICS
# ═══════════════════════════════════════════════════════════════════

block_height = Gauge(
    'stakepool_block_height',
    'Current block height',
    registry=metrics_registry
)

calls_total = Counter(
    'stakepool_calls_total',
    'Total number of calls committed',
    ['op'],
    registry=metrics_registry
)

calls_rejected_total = Counter(
    'stakepool_calls_rejected_total',
    'Total number of calls rejected',
    ['op', 'error'],
    registry=metrics_registry
)

pending_calls = Gauge(
    'stakepool_pending_calls',
    'Number of calls with a pending receipt',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# POOL METRICS
# ═══════════════════════════════════════════════════════════════════

total_staked = Gauge(
    'stakepool_total_staked',
    'Total principal staked (micro units)',
    registry=metrics_registry
)

reward_pool_balance = Gauge(
    'stakepool_reward_pool_balance',
    'Undistributed reward pool balance (micro units)',
    registry=metrics_registry
)

total_rewards_distributed = Gauge(
    'stakepool_total_rewards_distributed',
    'Rewards paid out since genesis (micro units)',
    registry=metrics_registry
)

staker_count = Gauge(
    'stakepool_staker_count',
    'Accounts that have ever staked (enumeration index length)',
    registry=metrics_registry
)

live_stakers = Gauge(
    'stakepool_live_stakers',
    'Accounts with a live position',
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def record_call(result):
    """
    Count a dispatched call. Should only be called once per call.

    Args:
        result: CallResult returned by the dispatcher
    """
    if result.ok:
        calls_total.labels(op=result.op.value).inc()
    else:
        calls_rejected_total.labels(op=result.op.value, error=result.error).inc()


def update_metrics(chain):
    """
    Update all gauges from the node's current state.
    Called when metrics are scraped.

    Args:
        chain: PoolChain instance
    """
    state = chain.pool.state

    block_height.set(chain.height)
    pending_calls.set(chain.receipts.pending_count())

    total_staked.set(state.accounting.total_staked)
    reward_pool_balance.set(state.accounting.reward_pool_balance)
    total_rewards_distributed.set(state.accounting.total_rewards_distributed)
    staker_count.set(state.accounting.staker_count)
    live_stakers.set(len(state.registry))
