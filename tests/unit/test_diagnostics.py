"""
Tests for failure diagnostics

Ranked extraction: failure lines -> last 5 lines -> raw message.
"""

import asyncio

from solders.signature import Signature

from perp_launcher.core.errors import LedgerTransportError
from perp_launcher.ledger.diagnostics import collect_logs, extract_diagnostic, failure_lines, log_tail


LOGS = [
    "Program 8n1Y invoke [1]",
    "Program log: Instruction: InitLP",
    "Program log: Error: insufficient collateral",
    "Program 8n1Y consumed 5000 of 200000 compute units",
    "Program 8n1Y failed: custom program error: 0x12",
]


class TestExtractDiagnostic:
    def test_prefers_failure_lines(self):
        """Only lines mentioning failure/error are kept, in log order."""
        result = extract_diagnostic("Transaction failed", LOGS)
        assert result == (
            "Transaction failed | Program log: Error: insufficient collateral; "
            "Program 8n1Y failed: custom program error: 0x12"
        )

    def test_falls_back_to_tail(self):
        logs = [f"Program log: line {i}" for i in range(8)]
        result = extract_diagnostic("boom", logs)
        assert result == "boom | " + "; ".join(logs[-5:])

    def test_falls_back_to_raw_message(self):
        assert extract_diagnostic("Blockhash not found", []) == "Blockhash not found"

    def test_nothing_at_all(self):
        assert extract_diagnostic("", []) == "Unknown error"

    def test_custom_strategy_order(self):
        result = extract_diagnostic("msg", LOGS, strategies=[log_tail, failure_lines])
        assert result.startswith("msg | Program 8n1Y invoke [1]; Program log: Instruction: InitLP")

    def test_error_marker_is_case_sensitive(self):
        """'error' in lowercase alone does not count as an Error marker."""
        assert failure_lines("m", ["Program log: no error here"]) is None


class TestCollectLogs:
    class _Transport:
        def __init__(self, logs):
            self.logs = logs
            self.requested = []

        async def get_transaction_logs(self, signature):
            self.requested.append(signature)
            return self.logs

    def test_fetches_by_signature(self):
        sig = Signature.new_unique()
        transport = self._Transport(["fetched"])
        error = LedgerTransportError("x", logs=["attached"], signature=str(sig))

        logs = asyncio.run(collect_logs(transport, error))

        assert logs == ["fetched"]
        assert transport.requested == [sig]

    def test_uses_attached_logs_without_signature(self):
        transport = self._Transport(["fetched"])
        error = LedgerTransportError("x", logs=["attached"])

        assert asyncio.run(collect_logs(transport, error)) == ["attached"]
        assert transport.requested == []

    def test_falls_back_when_fetch_empty(self):
        transport = self._Transport([])
        error = LedgerTransportError("x", logs=["attached"], signature=str(Signature.new_unique()))
        assert asyncio.run(collect_logs(transport, error)) == ["attached"]
