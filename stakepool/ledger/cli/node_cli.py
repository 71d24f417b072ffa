import argparse
import os
import json
import logging
from ...protocol.config.params import NETWORKS, CURRENT_NETWORK, UNIT
from ..core.chain import PoolChain
from ..rpc.api import start_rpc_server

logger = logging.getLogger(__name__)

def cmd_init(args):
    """Initialize node: data dir and genesis.json."""
    data_dir = args.datadir
    os.makedirs(data_dir, exist_ok=True)
    config = NETWORKS[args.network]

    genesis_path = os.path.join(data_dir, "genesis.json")
    if os.path.exists(genesis_path) and not args.force:
        print(f"Genesis already exists at {genesis_path} (use --force to overwrite)")
        return

    genesis_data = {
        "network_id": config.network_id,
        "owner": args.owner or config.owner,
        "reward_pool": int(args.reward_pool * UNIT),
        "height": args.height,
    }
    with open(genesis_path, "w") as f:
        f.write(json.dumps(genesis_data, indent=2))

    print(f"Owner: {genesis_data['owner']}")
    print(f"Initial reward pool: {args.reward_pool} STX")
    print(f"\nNode initialized in {data_dir}")

def cmd_run(args):
    data_dir = args.datadir
    db_path = os.path.join(data_dir, "pool.db")
    config = NETWORKS[args.network]

    print(f"Starting stakepool node...")
    print(f"Data DB: {db_path}")
    print(f"RPC: {args.host}:{args.port}")

    chain = PoolChain(db_path, config=config)

    if args.rebuild_state:
        print("Rebuilding state from call log as requested...")
        chain.rebuild_state_from_calls()

    try:
        start_rpc_server(chain, host=args.host, port=args.port)
    finally:
        chain.close()

def main():
    parser = argparse.ArgumentParser(prog="stakepool-node", description="Stakepool Node")
    parser.add_argument("--datadir", default="./.stakepool", help="Data directory")
    parser.add_argument("--network", default=CURRENT_NETWORK.network_id, choices=sorted(NETWORKS), help="Network")

    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Write genesis.json")
    init_parser.add_argument("--owner", default=None, help="Pool owner (defaults to network owner)")
    init_parser.add_argument("--reward-pool", type=float, default=0, help="Initial reward pool in STX")
    init_parser.add_argument("--height", type=int, default=0, help="Genesis height")
    init_parser.add_argument("--force", action="store_true", help="Overwrite existing genesis")

    run_parser = subparsers.add_parser("run", help="Run the node")
    run_parser.add_argument("--host", default="0.0.0.0", help="RPC Host")
    run_parser.add_argument("--port", type=int, default=8000, help="RPC Port")
    run_parser.add_argument("--rebuild-state", action="store_true", help="Rebuild state from call log on startup")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    if args.command == "init":
        cmd_init(args)
    elif args.command == "run":
        cmd_run(args)

if __name__ == "__main__":
    main()
