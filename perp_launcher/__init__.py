"""
perp-launcher — self-service perpetual market provisioning client.

Funds an ephemeral account, provisions every on-ledger object a market needs,
hands the market to the simulation engine and mirrors its status.
"""

__version__ = "0.3.0"
