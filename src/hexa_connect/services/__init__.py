"""
Services package - Wallet lifecycle services for Hexa Connect.

Contains:
- HexaConnect: application-facing entry point
- WalletLifecycleOrchestrator: restore / generate / delegate state machine
- BackupExporter: one-shot key export and backup import
- Provider interfaces for auth and external wallets
"""

from .connect import HexaConnect
from .lifecycle import WalletLifecycleOrchestrator, AuthEventChannel
from .backup import BackupExporter, BackupRequestStore, BackupRequest
from .providers import (
    AuthProvider,
    LocalAuthProvider,
    ExternalWalletConnector,
    ExternalConnection,
    Web3WalletConnector,
)

__all__ = [
    "HexaConnect",
    "WalletLifecycleOrchestrator",
    "AuthEventChannel",
    "BackupExporter",
    "BackupRequestStore",
    "BackupRequest",
    "AuthProvider",
    "LocalAuthProvider",
    "ExternalWalletConnector",
    "ExternalConnection",
    "Web3WalletConnector",
]
