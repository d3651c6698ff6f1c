"""
Core configuration, errors, domain models and JSON contracts.

This module contains the building blocks shared by the ledger, provisioning,
session and sync layers; nothing here performs I/O.
"""
