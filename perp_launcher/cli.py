"""
perp-launcher command line.

Commands:
- launch   run one launch session until the simulation ends
- markets  print markets with their latest stats
- gallery  print past simulations
"""

import argparse
import asyncio
import dataclasses
import json
import logging
from typing import List, Optional

from solders.keypair import Keypair

from perp_launcher.core.config import LauncherConfig, explorer_account_url, load_config
from perp_launcher.core.domain.market import GallerySort, sort_gallery
from perp_launcher.core.domain.phase import Phase
from perp_launcher.core.domain.policy import LAMPORTS_PER_SOL, SLAB_TIERS
from perp_launcher.core.domain.run import PipelineRun
from perp_launcher.core.errors import LauncherError
from perp_launcher.engine.client import SimulationEngineClient
from perp_launcher.ledger.submission import SubmissionEngine
from perp_launcher.ledger.transport import SolanaRpcTransport
from perp_launcher.session.state_machine import KeypairWallet, LaunchSession, Wallet
from perp_launcher.sync.realtime import AccountChangeSource
from perp_launcher.sync.stats_store import StatsStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="perp-launcher", description="Launch simulated perpetual markets")
    p.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    sub = p.add_subparsers(dest="command", required=True)

    launch = sub.add_parser("launch", help="Run a launch session until the simulation ends")
    launch.add_argument("--wallet", default="", help="Keypair JSON file to fund the launch from")
    launch.add_argument("--speed", type=float, default=None, help="Simulation speed multiplier")
    launch.add_argument("--tier", choices=sorted(SLAB_TIERS), default=None, help="Slab tier")
    launch.add_argument("--scenario", default="", help="Scenario to select once running")

    sub.add_parser("markets", help="Print markets with stats")

    gallery = sub.add_parser("gallery", help="Print past simulations")
    gallery.add_argument(
        "--sort", choices=[s.value for s in GallerySort], default=GallerySort.NEWEST.value
    )
    gallery.add_argument("--limit", type=int, default=100)
    return p.parse_args(argv)


def load_keypair(path: str) -> Keypair:
    """Read a Solana CLI keypair file (JSON array of 64 ints)."""
    with open(path, "r", encoding="utf-8") as f:
        return Keypair.from_bytes(bytes(json.load(f)))


class RunPrinter:
    """Prints run snapshots, repeating the deposit address whenever it changes."""

    def __init__(self, threshold_lamports: int):
        self.threshold_sol = threshold_lamports / LAMPORTS_PER_SOL
        self._funding_address: Optional[str] = None

    def __call__(self, run: PipelineRun) -> None:
        if run.phase == Phase.DEPOSIT and run.funding_address != self._funding_address:
            self._funding_address = run.funding_address
            print(f"Send {self.threshold_sol:g} SOL to {run.funding_address}", flush=True)
        line = f"[{run.phase.value}]"
        if run.phase == Phase.BUILDING and run.step_index:
            line += f" step {run.step_index}/6 {run.step_label}"
        if run.phase == Phase.DEPOSIT:
            line += f" balance {run.balance_lamports / LAMPORTS_PER_SOL:.4f} SOL"
        if run.last_error:
            line += f" error: {run.last_error}"
        print(line, flush=True)


async def _wait_for_build(session: LaunchSession, poll_sec: float) -> bool:
    """True once the market is live, False when the build for the current deposit failed."""
    funding_address = session.run.funding_address
    while True:
        run = session.run
        if run.phase in (Phase.RUNNING, Phase.ENDED):
            return True
        if run.phase == Phase.DEPOSIT and run.funding_address != funding_address:
            return False
        await asyncio.sleep(poll_sec)


async def drive_launch(
    session: LaunchSession,
    config: LauncherConfig,
    scenario: str = "",
    wallet: Optional[Wallet] = None,
    poll_sec: float = 0.2,
) -> int:
    """
    Run one session from deposit to the end of the simulation.

    Without a wallet a failed build prints the new deposit address and keeps
    waiting. With a wallet the launch stops after a failed transfer or build
    so the wallet is never drained by retries.

    Returns:
        Process exit code
    """
    printer = RunPrinter(session.funding_threshold)
    session.subscribe(printer)
    await session.start()
    printer(session.run)

    if wallet is not None:
        if not await session.fund_from_wallet(wallet):
            return 1
        if not await _wait_for_build(session, poll_sec):
            return 1
    else:
        while not await _wait_for_build(session, poll_sec):
            logger.info("Build failed, waiting for a deposit to the new funding account")

    if session.run.slab_address:
        print(f"Market live: {explorer_account_url(config, session.run.slab_address)}", flush=True)
    if session.run.phase == Phase.RUNNING:
        if scenario:
            await session.set_scenario(scenario)
        try:
            await session.wait_for_phase(Phase.ENDED, poll_sec=poll_sec)
        except asyncio.CancelledError:
            await session.stop()
            raise
    points = session.price_history.snapshot()
    if points:
        print(f"Final price {points[-1].price:.6f} after {len(points)} samples", flush=True)
    return 0


async def run_launch(config: LauncherConfig, args: argparse.Namespace) -> int:
    transport = SolanaRpcTransport(config.rpc_url)
    engine = SimulationEngineClient(config.api_base_url, timeout=config.http_timeout_sec)

    feed_factory = None
    if config.ws_url:
        def feed_factory(address):
            return AccountChangeSource(config.ws_url, address)

    session = LaunchSession(config, transport, engine, account_feed_factory=feed_factory)
    wallet = None
    if args.wallet:
        wallet = KeypairWallet(load_keypair(args.wallet), SubmissionEngine(transport))
    try:
        return await drive_launch(session, config, args.scenario, wallet)
    finally:
        await session.close()
        await engine.close()
        await transport.close()


async def run_markets(config: LauncherConfig) -> int:
    store = StatsStore(config.supabase_url, config.supabase_key, timeout=config.http_timeout_sec)
    try:
        markets = await store.fetch_markets_with_stats()
    finally:
        await store.close()
    for m in markets:
        print(
            f"{m.symbol or '?':<10} {m.slab_address}  last={m.last_price}  "
            f"vol24h={m.volume_24h}  oi_long={m.open_interest_long}  oi_short={m.open_interest_short}"
        )
    return 0


async def run_gallery(config: LauncherConfig, sort: str, limit: int) -> int:
    store = StatsStore(config.supabase_url, config.supabase_key, timeout=config.http_timeout_sec)
    try:
        rows = await store.fetch_simulation_gallery(limit)
    finally:
        await store.close()
    for r in sort_gallery(rows, GallerySort(sort)):
        change = f"{r.price_change_pct:+.2f}%" if r.price_change_pct is not None else "n/a"
        print(
            f"{r.token_symbol or '?':<10} {r.status:<8} {change:>9}  "
            f"trades={r.total_trades or 0}  liqs={r.total_liquidations or 0}  {r.slab_address}"
        )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format=LOG_FORMAT)

    config = load_config()
    if args.command == "launch":
        overrides = {}
        if args.speed is not None:
            overrides["sim_speed"] = args.speed
        if args.tier is not None:
            overrides["slab_tier"] = args.tier
        config = dataclasses.replace(config, **overrides)

    try:
        if args.command == "launch":
            return asyncio.run(run_launch(config, args))
        if not config.stats_store_enabled:
            raise SystemExit("SUPABASE_URL and SUPABASE_ANON_KEY must be set")
        if args.command == "markets":
            return asyncio.run(run_markets(config))
        return asyncio.run(run_gallery(config, args.sort, args.limit))
    except LauncherError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
