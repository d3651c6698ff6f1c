"""
LaunchSession — phase state machine of one market launch.

Phases:
- DEPOSIT:  funding account generated, balance polled every 2 s
- BUILDING: provisioning pipeline running (steps 1-6)
- RUNNING:  engine live, status polled every 3 s
- ENDED:    engine stopped; price history and market ids stay readable

Transitions (anything else raises InvalidPhaseTransition):
- DEPOSIT  -> BUILDING  first balance >= the funding threshold (fires once per run)
- BUILDING -> RUNNING   pipeline succeeded
- BUILDING -> DEPOSIT   pipeline failed; new funding account, diagnostic kept
- RUNNING  -> ENDED     status reports not running, or stop()
- ENDED    -> DEPOSIT   restart()

Each poller runs only in its phase and is stopped on phase exit.
"""

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.phase import Phase, is_allowed_transition
from perp_launcher.core.domain.policy import (
    DEFAULT_DECIMALS,
    INITIAL_PRICE_E6,
    PRICE_SCALE,
    funding_threshold_lamports,
    get_slab_tier,
)
from perp_launcher.core.domain.price_history import PriceHistoryBuffer
from perp_launcher.core.domain.run import PipelineRun
from perp_launcher.core.domain.simulation import PricePoint, SimulationState, TokenPreview
from perp_launcher.core.errors import InvalidPhaseTransition, LedgerTransportError
from perp_launcher.engine.client import SimulationEngineClient
from perp_launcher.ledger.submission import SubmissionEngine
from perp_launcher.ledger.transport import LedgerTransport
from perp_launcher.provisioning.context import ProvisioningContext
from perp_launcher.provisioning.pipeline import PipelineDriver, PipelineResult
from perp_launcher.sync.reconciler import PushSource
from perp_launcher.sync.tasks import PeriodicTask

logger = logging.getLogger(__name__)

WALLET_TRANSFER_LABEL = "Wallet transfer"


@dataclass(frozen=True)
class PhaseTransition:
    """Recorded phase change."""

    previous: Phase
    new: Phase
    reason: str


class Wallet(Protocol):
    """External wallet able to send SOL to the funding account."""

    def pubkey(self) -> Pubkey:
        ...

    async def transfer(self, to: Pubkey, lamports: int) -> str:
        """Send lamports; raise on rejection or failure. Returns the signature."""
        ...


class KeypairWallet:
    """Wallet backed by a local keypair (e.g. a Solana CLI keypair file)."""

    def __init__(self, keypair: Keypair, submitter: SubmissionEngine):
        self.keypair = keypair
        self.submitter = submitter

    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    async def transfer(self, to: Pubkey, lamports: int) -> str:
        ix = transfer(TransferParams(from_pubkey=self.keypair.pubkey(), to_pubkey=to, lamports=lamports))
        signature = await self.submitter.submit([ix], [self.keypair], WALLET_TRANSFER_LABEL)
        return str(signature)


RunListener = Callable[[PipelineRun], None]
AccountFeedFactory = Callable[[Pubkey], Optional[PushSource]]


class LaunchSession:
    """
    One launch session: funding, provisioning, live simulation, end.

    Args:
        config: Launcher configuration
        transport: Ledger RPC (balance polling, submissions)
        engine: Simulation engine client
        pipeline: Pipeline driver (defaults to the standard six steps)
        account_feed_factory: Optional push source for funding balance changes
        clock: Wall clock in seconds
    """

    def __init__(
        self,
        config: LauncherConfig,
        transport: LedgerTransport,
        engine: SimulationEngineClient,
        pipeline: Optional[PipelineDriver] = None,
        account_feed_factory: Optional[AccountFeedFactory] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.transport = transport
        self.engine = engine
        self.pipeline = pipeline or PipelineDriver(SubmissionEngine(transport), engine)
        self.account_feed_factory = account_feed_factory
        self.clock = clock
        self.funding_threshold = funding_threshold_lamports(get_slab_tier(config.slab_tier))

        self.funding = Keypair()
        self.run = PipelineRun(funding_address=str(self.funding.pubkey()))
        self.simulation = SimulationState()
        self.price_history = PriceHistoryBuffer()
        self.token_preview: Optional[TokenPreview] = None
        self.transitions: List[PhaseTransition] = []
        self.last_result: Optional[PipelineResult] = None

        self._building = False
        self._build_task: Optional[asyncio.Task] = None
        self._balance_poller: Optional[PeriodicTask] = None
        self._status_poller: Optional[PeriodicTask] = None
        self._account_feed: Optional[PushSource] = None
        self._feed_warned = False
        self._listeners: List[RunListener] = []

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    @property
    def phase(self) -> Phase:
        return self.run.phase

    @property
    def snapshot(self) -> PipelineRun:
        return self.run

    @property
    def build_task(self) -> Optional[asyncio.Task]:
        return self._build_task

    def subscribe(self, listener: RunListener) -> Callable[[], None]:
        """Call *listener* with every new run snapshot. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _update(self, **changes) -> None:
        self.run = self.run.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self.run)

    def _transition(self, new: Phase, reason: str, **changes) -> None:
        previous = self.run.phase
        if not is_allowed_transition(previous, new):
            raise InvalidPhaseTransition(f"{previous.value} -> {new.value} ({reason})")
        self.transitions.append(PhaseTransition(previous=previous, new=new, reason=reason))
        logger.info("Phase %s -> %s: %s", previous.value, new.value, reason)
        self._update(phase=new, **changes)

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    # =========================================================================
    # DEPOSIT
    # =========================================================================

    async def start(self) -> None:
        """Load token metadata and start watching the funding balance."""
        await self.refresh_token_preview()
        await self._enter_deposit()

    async def refresh_token_preview(self) -> TokenPreview:
        self.token_preview = await self.engine.fetch_token_preview()
        return self.token_preview

    async def _enter_deposit(self) -> None:
        logger.info("Waiting for funding at %s", self.funding.pubkey())
        self._balance_poller = PeriodicTask(
            "balance-poll", self.config.balance_poll_sec, self.poll_balance_once
        )
        self._balance_poller.start()

        if self.account_feed_factory is None:
            return
        feed = self.account_feed_factory(self.funding.pubkey())
        if feed is None:
            return
        funding = self.funding
        try:
            await feed.start(self.poll_balance_once)
        except Exception as e:
            if not self._feed_warned:
                self._feed_warned = True
                logger.warning("Balance push unavailable, polling only: %s", e)
            return
        # the poller may have detected funding while the feed was connecting
        if self.run.phase != Phase.DEPOSIT or self._building or funding is not self.funding:
            await feed.stop()
            return
        self._account_feed = feed

    async def _leave_deposit(self) -> None:
        if self._balance_poller is not None:
            self._balance_poller.stop()
        feed, self._account_feed = self._account_feed, None
        if feed is not None:
            await feed.stop()

    async def poll_balance_once(self) -> None:
        """
        Check the funding balance once.

        Starts the build on the first observation at or above the threshold;
        the run flag makes this fire at most once per run.
        """
        if self.run.phase != Phase.DEPOSIT or self._building:
            return
        funding = self.funding
        try:
            balance = await self.transport.get_balance(funding.pubkey())
        except LedgerTransportError as e:
            logger.debug("Balance poll failed: %s", e)
            return
        # funding may have rotated or the build started while awaiting
        if funding is not self.funding or self.run.phase != Phase.DEPOSIT:
            return
        self._update(balance_lamports=balance)

        if balance >= self.funding_threshold and not self._building:
            self._building = True
            if self._balance_poller is not None:
                self._balance_poller.stop()
            logger.info("Funding detected: %d lamports", balance)
            self._build_task = asyncio.get_running_loop().create_task(
                self.build_market(), name="build-market"
            )

    async def fund_from_wallet(self, wallet: Wallet) -> bool:
        """
        Send the threshold amount from an external wallet, then check the balance.

        A user rejection is not reported; any other failure is kept as the
        latest diagnostic.

        Returns:
            True if the transfer went through
        """
        if self.run.phase != Phase.DEPOSIT:
            logger.warning("Wallet funding ignored in phase %s", self.run.phase.value)
            return False
        self._update(last_error=None)
        try:
            signature = await wallet.transfer(self.funding.pubkey(), self.funding_threshold)
        except Exception as e:
            message = str(e)
            if "reject" in message.lower():
                logger.info("Wallet transfer rejected by user")
            else:
                logger.warning("Wallet transfer failed: %s", message)
                self._update(last_error=f"Transfer failed: {message}")
            return False
        logger.info("Wallet transfer %s sent", signature)
        await self.poll_balance_once()
        return True

    # =========================================================================
    # BUILDING
    # =========================================================================

    def _on_progress(self, index: int, description: str) -> None:
        self._update(step_index=index, step_label=description)

    def _on_market_created(self, slab_address: str, mint_address: str) -> None:
        self._update(slab_address=slab_address, mint_address=mint_address)

    async def build_market(self) -> Optional[PipelineResult]:
        """Run the provisioning pipeline for the current funding account."""
        self._building = True
        await self._leave_deposit()
        self._transition(Phase.BUILDING, "funding detected", last_error=None, step_index=0, step_label="")

        decimals = self.token_preview.decimals if self.token_preview else DEFAULT_DECIMALS
        try:
            ctx = ProvisioningContext.create(self.config, self.funding, decimals)
            result = await self.pipeline.run(
                ctx,
                on_progress=self._on_progress,
                on_market_created=self._on_market_created,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Build failed unexpectedly")
            await self._fail_build(str(e) or type(e).__name__)
            return None

        self.last_result = result
        if result.success:
            self._succeed_build(result)
        else:
            await self._fail_build(result.error or "Unknown error")
        return result

    def _succeed_build(self, result: PipelineResult) -> None:
        self.simulation = SimulationState(
            running=True, slab_address=result.slab_address, price_e6=INITIAL_PRICE_E6
        )
        self.price_history.reset(
            seed=PricePoint(time_ms=self._now_ms(), price=INITIAL_PRICE_E6 / PRICE_SCALE)
        )
        self._transition(
            Phase.RUNNING,
            "pipeline succeeded",
            step_index=result.step_index,
            slab_address=result.slab_address,
            mint_address=result.mint_address,
        )
        self._status_poller = PeriodicTask(
            "status-poll", self.config.status_poll_sec, self.poll_status_once
        )
        self._status_poller.start()

    async def _fail_build(self, diagnostic: str) -> None:
        # a used funding account is never reused: excess funds stay with it
        self.funding = Keypair()
        self._building = False
        self._transition(
            Phase.DEPOSIT,
            "pipeline failed",
            last_error=diagnostic,
            step_index=0,
            step_label="",
            funding_address=str(self.funding.pubkey()),
            balance_lamports=0,
            slab_address=None,
            mint_address=None,
        )
        await self._enter_deposit()

    # =========================================================================
    # RUNNING
    # =========================================================================

    async def poll_status_once(self) -> None:
        """Merge one status poll and append a price sample; a failed poll is ignored."""
        if self.run.phase != Phase.RUNNING:
            return
        status = await self.engine.fetch_status()
        if status is None or self.run.phase != Phase.RUNNING:
            return
        self.simulation = self.simulation.merge(status)
        self.price_history.append(self._now_ms(), self.simulation.price)

        if status.running is False:
            if self._status_poller is not None:
                self._status_poller.stop()
            self._transition(Phase.ENDED, "engine reported not running")

    async def stop(self) -> None:
        """
        Stop the engine and end the session locally.

        Raises:
            InvalidPhaseTransition: If not running
        """
        if self.run.phase != Phase.RUNNING:
            raise InvalidPhaseTransition(f"stop() requires running, phase is {self.run.phase.value}")
        if self._status_poller is not None:
            self._status_poller.stop()
        await self.engine.stop()
        self.simulation = SimulationState()
        self._transition(Phase.ENDED, "stopped by user")

    async def set_scenario(self, scenario: str) -> bool:
        return await self.engine.set_scenario(scenario)

    async def override_price(self, price_e6: int) -> bool:
        return await self.engine.override_price(price_e6)

    def set_speed(self, speed: float) -> None:
        """Simulation speed for the next engine start."""
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        self.config = dataclasses.replace(self.config, sim_speed=speed)

    # =========================================================================
    # ENDED / LIFECYCLE
    # =========================================================================

    async def restart(self) -> None:
        """Reset every per-run entity and return to DEPOSIT with a new funding account."""
        if self.run.phase != Phase.ENDED:
            raise InvalidPhaseTransition(
                f"restart() requires ended, phase is {self.run.phase.value}"
            )
        await self.reset()
        await self.refresh_token_preview()
        await self._enter_deposit()

    async def reset(self) -> None:
        """
        Replace all per-run state in one step.

        Pollers, the balance feed and any in-flight build are stopped first;
        nothing is touched when the current phase cannot return to DEPOSIT.
        Watching the new funding account is left to the caller.

        Raises:
            InvalidPhaseTransition: If the session is RUNNING
        """
        previous = self.run.phase
        if previous != Phase.DEPOSIT and not is_allowed_transition(previous, Phase.DEPOSIT):
            raise InvalidPhaseTransition(f"{previous.value} -> deposit (restart)")

        await self._teardown()

        self.funding = Keypair()
        self._building = False
        self._build_task = None
        self._balance_poller = None
        self._status_poller = None
        self.simulation = SimulationState()
        self.price_history.reset()
        self.last_result = None
        if previous != Phase.DEPOSIT:
            self.transitions.append(PhaseTransition(previous, Phase.DEPOSIT, "restart"))
            logger.info("Phase %s -> deposit: restart", previous.value)
        self.run = PipelineRun(funding_address=str(self.funding.pubkey()))
        for listener in list(self._listeners):
            listener(self.run)

    def dismiss_error(self) -> None:
        self._update(last_error=None)

    async def close(self) -> None:
        """Cancel every poller and any in-flight build."""
        await self._teardown()

    async def _teardown(self) -> None:
        for poller in (self._balance_poller, self._status_poller):
            if poller is not None:
                await poller.stop_and_wait()
        feed, self._account_feed = self._account_feed, None
        if feed is not None:
            await feed.stop()
        task = self._build_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def wait_for_phase(self, *phases: Phase, poll_sec: float = 0.2) -> Phase:
        """Block until the session reaches one of *phases*."""
        while self.run.phase not in phases:
            await asyncio.sleep(poll_sec)
        return self.run.phase
