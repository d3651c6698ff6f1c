"""Launch session: the phase state machine exposed to callers."""

from perp_launcher.session.state_machine import (
    KeypairWallet,
    LaunchSession,
    PhaseTransition,
    Wallet,
)

__all__ = ["LaunchSession", "PhaseTransition", "Wallet", "KeypairWallet"]
