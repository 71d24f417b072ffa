# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import sys
import json
import requests
import os
from pydantic import ValidationError
from ..protocol.types.call import (
    CallRequest, StakeCall, AddStakeCall, UnstakeCall, ClaimRewardsCall, FundRewardPoolCall,
)
from ..protocol.config.params import CURRENT_NETWORK, DECIMALS, DENOM, UNIT, LOCK_TIERS, BLOCK_MINUTES

DEFAULT_NODE = "http://localhost:8000"

def get_node_url(args):
    return args.node or os.environ.get("STAKEPOOL_NODE", DEFAULT_NODE)

# --- Formatting ---
def to_units(amount: float) -> int:
    return int(round(amount * UNIT))

def format_amount(units: int) -> str:
    whole, frac = divmod(int(units), UNIT)
    frac_str = f"{frac:0{DECIMALS}d}".rstrip("0")
    return f"{whole:,}.{frac_str} {DENOM.upper()}" if frac_str else f"{whole:,} {DENOM.upper()}"

def format_bps(bps: int) -> str:
    return f"{bps / 100:.2f}%"

def lock_label(lock_blocks: int) -> str:
    if lock_blocks == 0:
        return LOCK_TIERS[0].label
    for tier in reversed(LOCK_TIERS[1:]):
        if lock_blocks >= tier.min_blocks:
            return tier.label
    return f"{lock_blocks} blocks"

def format_blocks(blocks: int) -> str:
    """Approximate wall time for a block count."""
    minutes = blocks * BLOCK_MINUTES
    days, rem = divmod(minutes, 24 * 60)
    hours = rem // 60
    if days:
        return f"~{days}d {hours}h"
    return f"~{hours}h {rem % 60}m"

# --- Query Commands ---
def _get(url, path):
    try:
        resp = requests.get(f"{url}{path}")
    except requests.RequestException as e:
        print(f"Connection error: {e}")
        sys.exit(1)
    if resp.status_code != 200:
        print(f"Error: {resp.text}")
        sys.exit(1)
    return resp.json()

def cmd_query_status(args):
    url = get_node_url(args)
    data = _get(url, f"/staker/{args.account}")
    if data is None:
        print(f"No active stake for {args.account}")
        return

    print(f"Account:         {data['account']} (slot #{data['index']})")
    print(f"Staked:          {format_amount(data['amount'])}")
    print(f"Lock:            {lock_label(data['lock_duration'])} (+{format_bps(data['lock_bonus_bps'])})")
    if data['is_unlocked']:
        print("Unlocked:        yes")
    else:
        print(f"Unlocked:        no, {data['blocks_remaining']} blocks left ({format_blocks(data['blocks_remaining'])})")
    print(f"Pending rewards: {format_amount(data['pending_rewards'])}")
    print(f"Total claimed:   {format_amount(data['total_claimed'])}")

def cmd_query_pending(args):
    url = get_node_url(args)
    data = _get(url, f"/staker/{args.account}/pending")
    print(f"Pending rewards: {format_amount(data['pending_rewards'])} (height {data['height']})")

def cmd_query_pool(args):
    url = get_node_url(args)
    data = _get(url, "/pool/stats")
    print(f"Total staked:        {format_amount(data['total_staked'])}")
    print(f"Reward pool:         {format_amount(data['reward_pool'])}")
    print(f"Rewards distributed: {format_amount(data['total_rewards_distributed'])}")
    print(f"Stakers (all time):  {data['staker_count']}")

def cmd_query_apy(args):
    url = get_node_url(args)
    try:
        resp = requests.get(f"{url}/apy/{args.lock_blocks}")
    except requests.RequestException as e:
        print(f"Connection error: {e}")
        sys.exit(1)
    data = resp.json()
    if resp.status_code != 200:
        print(f"Error: {data.get('error')} ({data.get('code')})")
        sys.exit(1)
    print(f"{lock_label(args.lock_blocks)}: {format_bps(data['total_bps'])} APY "
          f"(base + {format_bps(data['lock_bonus_bps'])} bonus)")

def cmd_query_leaderboard(args):
    url = get_node_url(args)
    path = "/leaderboard" if args.limit is None else f"/leaderboard?limit={args.limit}"
    data = _get(url, path)
    if not data['stakers']:
        print("No stakers yet.")
        return

    print(f"{'#':<4} {'Account':<45} {'Staked':>20} {'Lock':<10}")
    print("-" * 82)
    for rank, s in enumerate(data['stakers'], start=1):
        print(f"{rank:<4} {s['account']:<45} {format_amount(s['amount']):>20} {lock_label(s['lock_duration']):<10}")

# --- Tx Commands ---
def build_call(call_cls, **fields):
    try:
        return call_cls(**fields)
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        print(f"Invalid call: {problems}")
        sys.exit(1)

def send_call(url, request: CallRequest):
    try:
        resp = requests.post(f"{url}/call", json=json.loads(request.model_dump_json()))
    except requests.RequestException as e:
        print(f"Connection error: {e}")
        sys.exit(1)

    data = resp.json()
    if resp.status_code == 200:
        print(f"Success! Call ID: {data['call_id']} (height {data['height']})")
        for k, v in (data.get('value') or {}).items():
            print(f"  {k}: {v}")
    else:
        if 'error' in data:
            print(f"Rejected: {data['error']} ({data['code']}) - {data.get('message')}")
        else:
            print(f"Failed: {resp.text}")
        sys.exit(1)

def cmd_tx_stake(args):
    url = get_node_url(args)
    call = build_call(StakeCall, amount=to_units(args.amount), lock_blocks=args.lock_blocks)
    print(f"Staking {args.amount} {DENOM} from {args.sender} ({lock_label(args.lock_blocks)})...")
    send_call(url, CallRequest(sender=args.sender, call=call))

def cmd_tx_add_stake(args):
    url = get_node_url(args)
    call = build_call(AddStakeCall, amount=to_units(args.amount))
    print(f"Adding {args.amount} {DENOM} to stake of {args.sender}...")
    send_call(url, CallRequest(sender=args.sender, call=call))

def cmd_tx_unstake(args):
    url = get_node_url(args)
    print(f"Unstaking {args.sender}...")
    send_call(url, CallRequest(sender=args.sender, call=UnstakeCall()))

def cmd_tx_claim(args):
    url = get_node_url(args)
    print(f"Claiming rewards for {args.sender}...")
    send_call(url, CallRequest(sender=args.sender, call=ClaimRewardsCall()))

def cmd_tx_fund(args):
    url = get_node_url(args)
    call = build_call(FundRewardPoolCall, amount=to_units(args.amount))
    print(f"Funding reward pool with {args.amount} {DENOM}...")
    send_call(url, CallRequest(sender=args.sender, call=call))

def main():
    parser = argparse.ArgumentParser(prog="stakepool-cli", description="Stakepool Client CLI")
    parser.add_argument("--node", help="Node URL (default: http://localhost:8000)")

    subparsers = parser.add_subparsers(dest="command", help="Sub-commands")

    # query
    p_query = subparsers.add_parser("query", help="Query pool state")
    sp_query = p_query.add_subparsers(dest="subcommand")

    pq_status = sp_query.add_parser("status", help="Get staker position")
    pq_status.add_argument("account", help="Staker address")

    pq_pending = sp_query.add_parser("pending", help="Get pending rewards")
    pq_pending.add_argument("account", help="Staker address")

    sp_query.add_parser("pool", help="Get pool stats")

    pq_apy = sp_query.add_parser("apy", help="Estimate APY for a lock duration")
    pq_apy.add_argument("lock_blocks", type=int, help="Lock duration in blocks")

    pq_lb = sp_query.add_parser("leaderboard", help="Largest stakers")
    pq_lb.add_argument("--limit", type=int, default=None, help=f"Slots to scan (default {CURRENT_NETWORK.leaderboard_limit})")

    # tx
    p_tx = subparsers.add_parser("tx", help="Submit pool calls")
    sp_tx = p_tx.add_subparsers(dest="subcommand")

    pt_stake = sp_tx.add_parser("stake", help="Open a staking position")
    pt_stake.add_argument("amount", type=float, help=f"Amount in {DENOM}")
    pt_stake.add_argument("--lock-blocks", type=int, default=0,
                          help="Lock duration: 0, 1008 (1 week), 4320 (1 month), 12960 (3 months)")
    pt_stake.add_argument("--from", dest="sender", required=True, help="Sender address")

    pt_add = sp_tx.add_parser("add-stake", help="Increase an existing position")
    pt_add.add_argument("amount", type=float, help=f"Amount in {DENOM}")
    pt_add.add_argument("--from", dest="sender", required=True, help="Sender address")

    pt_unstake = sp_tx.add_parser("unstake", help="Withdraw principal and rewards")
    pt_unstake.add_argument("--from", dest="sender", required=True, help="Sender address")

    pt_claim = sp_tx.add_parser("claim", help="Claim pending rewards")
    pt_claim.add_argument("--from", dest="sender", required=True, help="Sender address")

    pt_fund = sp_tx.add_parser("fund", help="Fund the reward pool (owner only)")
    pt_fund.add_argument("amount", type=float, help=f"Amount in {DENOM}")
    pt_fund.add_argument("--from", dest="sender", required=True, help="Owner address")

    args = parser.parse_args()

    if args.command == "query":
        if args.subcommand == "status": cmd_query_status(args)
        elif args.subcommand == "pending": cmd_query_pending(args)
        elif args.subcommand == "pool": cmd_query_pool(args)
        elif args.subcommand == "apy": cmd_query_apy(args)
        elif args.subcommand == "leaderboard": cmd_query_leaderboard(args)
        else: p_query.print_help()

    elif args.command == "tx":
        if args.subcommand == "stake": cmd_tx_stake(args)
        elif args.subcommand == "add-stake": cmd_tx_add_stake(args)
        elif args.subcommand == "unstake": cmd_tx_unstake(args)
        elif args.subcommand == "claim": cmd_tx_claim(args)
        elif args.subcommand == "fund": cmd_tx_fund(args)
        else: p_tx.print_help()

    else:
        parser.print_help()

if __name__ == "__main__":
    main()
