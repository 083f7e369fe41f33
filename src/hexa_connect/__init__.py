"""
Hexa Connect - Secret-gated wallets for authenticated users.

Contains:
- wallet: cipher, wallet materialization, password attestation
- models: storage providers and session state
- services: lifecycle orchestrator, backups, the HexaConnect entry point
"""

__version__ = "0.1.0"
