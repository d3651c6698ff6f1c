"""
SubmissionEngine — sign, send and confirm one labelled transaction.

Policy:
1. Fetch a fresh blockhash and last valid block height right before signing
2. Fee payer is the first signer
3. Send raw with preflight skipped
4. Wait for confirmed commitment, bounded by the last valid block height
5. On expiry: fail with the label (never retried)
6. On any failure: collect logs, extract a diagnostic, prefix it with [label]
7. Errors outside the transport hierarchy keep their raw message under the label
"""

import logging
from typing import Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction

from perp_launcher.core.errors import LedgerTransportError, SubmissionFailure

from .diagnostics import collect_logs, extract_diagnostic
from .transport import LedgerTransport

logger = logging.getLogger(__name__)


class SubmissionEngine:
    """
    Submits instruction groups as single transactions.

    Args:
        transport: Ledger RPC
    """

    def __init__(self, transport: LedgerTransport):
        self.transport = transport

    async def submit(
        self,
        instructions: Sequence[Instruction],
        signers: Sequence[Keypair],
        label: str,
    ) -> Signature:
        """
        Submit and confirm one transaction.

        Args:
            instructions: Ordered instructions
            signers: Exact signer set; the first one pays fees
            label: Step label carried into diagnostics

        Returns:
            Confirmed transaction signature

        Raises:
            SubmissionFailure: On rejection, failed execution, expiry or a
                transport failure of any kind
        """
        if not signers:
            raise ValueError("At least one signer (the fee payer) is required")

        try:
            blockhash, last_valid_block_height = await self.transport.get_latest_blockhash()
            message = Message.new_with_blockhash(
                list(instructions), signers[0].pubkey(), blockhash
            )
            tx = Transaction(list(signers), message, blockhash)
            signature = await self.transport.send_raw_transaction(bytes(tx))
            logger.info("[%s] sent %s", label, signature)
            await self.transport.confirm_transaction(signature, last_valid_block_height)
        except LedgerTransportError as e:
            logs = await collect_logs(self.transport, e)
            diagnostic = f"[{label}] {extract_diagnostic(e.message, logs)}"
            logger.error("Submission failed: %s", diagnostic)
            raise SubmissionFailure(label, diagnostic, signature=e.signature) from e
        except Exception as e:
            # a transport outside the LedgerTransportError hierarchy still gets a label
            diagnostic = f"[{label}] {str(e) or type(e).__name__}"
            logger.error("Submission failed: %s", diagnostic)
            raise SubmissionFailure(label, diagnostic) from e

        logger.info("[%s] confirmed %s", label, signature)
        return signature
