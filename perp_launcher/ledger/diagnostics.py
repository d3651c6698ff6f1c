"""
Failure diagnostics — turn a transport error into one readable line.

Ranked strategies, first non-empty result wins:
1. program log lines mentioning a failure or error, appended to the message
2. the last 5 log lines, appended to the message
3. the raw transport message
"""

import logging
from typing import Callable, List, Optional, Sequence

from solders.signature import Signature

from perp_launcher.core.errors import LedgerTransportError

from .transport import LedgerTransport

logger = logging.getLogger(__name__)

TAIL_LINES = 5

Strategy = Callable[[str, Sequence[str]], Optional[str]]


def failure_lines(message: str, logs: Sequence[str]) -> Optional[str]:
    hits = [line for line in logs if "failed" in line or "Error" in line]
    if not hits:
        return None
    return f"{message} | {'; '.join(hits)}"


def log_tail(message: str, logs: Sequence[str]) -> Optional[str]:
    if not logs:
        return None
    return f"{message} | {'; '.join(logs[-TAIL_LINES:])}"


def raw_message(message: str, logs: Sequence[str]) -> Optional[str]:
    return message or None


STRATEGIES: List[Strategy] = [failure_lines, log_tail, raw_message]


def extract_diagnostic(
    message: str, logs: Sequence[str], strategies: Sequence[Strategy] = STRATEGIES
) -> str:
    """
    Apply strategies in order and return the first non-empty result.

    Args:
        message: Raw transport message
        logs: Program log lines (possibly empty)
        strategies: Ranked extraction strategies

    Returns:
        Diagnostic text ("Unknown error" if every strategy came up empty)
    """
    for strategy in strategies:
        result = strategy(message, logs)
        if result:
            return result
    return "Unknown error"


async def collect_logs(transport: LedgerTransport, error: LedgerTransportError) -> List[str]:
    """
    Program logs for a failed submission.

    Fetched by signature when the transaction reached the ledger, otherwise
    taken from the logs attached to the error.
    """
    if error.signature:
        try:
            logs = await transport.get_transaction_logs(Signature.from_string(error.signature))
        except LedgerTransportError as e:
            logger.debug("Could not fetch logs for %s: %s", error.signature, e)
            logs = []
        if logs:
            return logs
    return list(error.logs)
