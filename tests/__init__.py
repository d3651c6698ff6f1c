"""
Test suite for perp-launcher

Contains:
- tests/unit/ : Unit tests for individual modules (ledger, provisioning,
  session, sync, engine, contracts)
- tests/conftest.py : Shared fakes for the ledger transport, submission and
  simulation engine
"""
