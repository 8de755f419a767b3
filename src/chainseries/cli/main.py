from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from decimal import Decimal

from chainseries.config import settings
from chainseries.core.models import TimeFrameKey
from chainseries.adapters.chain.ethereum_chain_adapter import EthereumChainAdapter
from chainseries.adapters.chain.fetch_client import RateLimitedFetchClient
from chainseries.adapters.chain.rate_limiter import TokenBucket
from chainseries.adapters.chain.static_chain_adapter import StaticChainAdapter
from chainseries.io.schemas import cache_to_dict
from chainseries.ports.chain_data_port import ChainDataPort
from chainseries.services.cache_store import CacheStore
from chainseries.services.read_api import ReadApi
from chainseries.services.scheduler import RefreshScheduler
from chainseries.services.series_generator import SeriesGenerator
from chainseries.services.smoothing import LaunchSmoothing


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="chainseries", description="Cached on-chain balance series API")
    p.add_argument("--use-static", action="store_true", help="Use static adapter (dev/testing)")
    p.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level")
    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with the periodic refresher")
    serve.add_argument("--host", default=settings.API_HOST)
    serve.add_argument("--port", type=int, default=settings.API_PORT)
    serve.add_argument("--interval", type=float, default=settings.REFRESH_INTERVAL_SEC, help="Refresh interval in seconds")

    refresh = sub.add_parser("refresh", help="Refresh once and print the cache as JSON")
    refresh.add_argument("--out", help="Write JSON here instead of stdout")
    return p


def _parse_date(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def build_chain(use_static: bool) -> ChainDataPort:
    if use_static:
        return StaticChainAdapter(current_block=20_000_000, current_balance=Decimal("0"))
    bucket = TokenBucket(
        capacity=settings.RATE_LIMIT_TOKENS,
        refill_interval=settings.RATE_LIMIT_WINDOW_SEC,
        max_wait=settings.RATE_LIMIT_MAX_WAIT_SEC,
    )
    client = RateLimitedFetchClient(
        bucket,
        timeout=settings.HTTP_TIMEOUT_SEC,
        max_retries=settings.HTTP_MAX_RETRIES,
        backoff_base=settings.HTTP_BACKOFF_BASE_SEC,
    )
    return EthereumChainAdapter(
        client,
        rpc_url=settings.RPC_URL,
        explorer_url=settings.ETHERSCAN_BASE_URL,
        explorer_api_key=settings.ETHERSCAN_API_KEY,
        explorer_chain_id=settings.ETHERSCAN_CHAIN_ID,
    )


def build_store(chain: ChainDataPort, freshness_window: float) -> CacheStore:
    smoothing = LaunchSmoothing(
        launch_date=_parse_date(settings.LAUNCH_DATE),
        smoothing_end=_parse_date(settings.SMOOTHING_END_DATE),
    )
    generator = SeriesGenerator(
        chain,
        tracked_address=settings.TRACKED_ADDRESS,
        contract_address=settings.CONTRACT_ADDRESS,
        balance_offset=settings.BALANCE_OFFSET_ETH,
        preprocessors={TimeFrameKey.CUSTOM: [smoothing]},
    )
    return CacheStore(generator, freshness_window=freshness_window)


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.use_static and not (os.getenv("INFURA_API_KEY") or os.getenv("RPC_URL")):
        print("Missing INFURA_API_KEY or RPC_URL environment variable", file=sys.stderr)
        return 2

    chain = build_chain(args.use_static)

    if args.command == "refresh":
        store = build_store(chain, freshness_window=settings.REFRESH_INTERVAL_SEC)
        store.refresh(force=True)
        payload = json.dumps(cache_to_dict(store.snapshot_map()), indent=2)
        if args.out:
            with open(args.out, "w", encoding="utf-8") as f:
                f.write(payload)
            print(f"Wrote: {args.out}")
        else:
            print(payload)
        return 0

    import uvicorn

    from chainseries.api.app import create_app

    store = build_store(chain, freshness_window=args.interval)
    scheduler = RefreshScheduler(store, interval=args.interval)
    app = create_app(ReadApi(store, simulate_multiplier=settings.SIMULATE_MULTIPLIER), scheduler)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
