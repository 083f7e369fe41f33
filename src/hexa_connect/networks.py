"""
Hexa Networks - Chain configurations and default providers.

Supports Ethereum, Polygon and Base (mainnets and testnets).
"""

from dataclasses import dataclass
from typing import Optional
from web3 import Web3

# ============================================
# Network Configurations
# ============================================

# BIP-44 path used by every EVM chain (coin type 60)
EVM_DERIVATION_PATH = "m/44'/60'/0'/0/0"


@dataclass
class NetworkConfig:
    """Configuration for a blockchain network."""
    chain_id: int
    name: str
    display_name: str
    rpc_url: str
    explorer_url: str
    is_testnet: bool
    native_symbol: str
    type: str = "evm"
    derivation_path: str = EVM_DERIVATION_PATH


NETWORKS = {
    # Ethereum Mainnet
    1: NetworkConfig(
        chain_id=1,
        name="ethereum",
        display_name="Ethereum",
        rpc_url="https://ethereum.publicnode.com",
        explorer_url="https://etherscan.io",
        is_testnet=False,
        native_symbol="ETH",
    ),
    # Ethereum Sepolia Testnet
    11155111: NetworkConfig(
        chain_id=11155111,
        name="sepolia",
        display_name="Sepolia",
        rpc_url="https://ethereum-sepolia.publicnode.com",
        explorer_url="https://sepolia.etherscan.io",
        is_testnet=True,
        native_symbol="ETH",
    ),
    # Polygon Mainnet
    137: NetworkConfig(
        chain_id=137,
        name="polygon",
        display_name="Polygon",
        rpc_url="https://polygon-rpc.com",
        explorer_url="https://polygonscan.com",
        is_testnet=False,
        native_symbol="POL",
    ),
    # Base Mainnet
    8453: NetworkConfig(
        chain_id=8453,
        name="base",
        display_name="Base",
        rpc_url="https://base.publicnode.com",
        explorer_url="https://basescan.org",
        is_testnet=False,
        native_symbol="ETH",
    ),
    # Base Sepolia Testnet
    84532: NetworkConfig(
        chain_id=84532,
        name="base-sepolia",
        display_name="Base Sepolia",
        rpc_url="https://sepolia.base.org",
        explorer_url="https://sepolia.basescan.org",
        is_testnet=True,
        native_symbol="ETH",
    ),
}

# Default network
DEFAULT_NETWORK = 1


# ============================================
# Utility Functions
# ============================================

def get_network(chain_id: int) -> Optional[NetworkConfig]:
    """Get network config by chain ID."""
    return NETWORKS.get(chain_id)


def get_network_by_name(name: str) -> Optional[NetworkConfig]:
    """Get network config by name."""
    for network in NETWORKS.values():
        if network.name == name:
            return network
    return None


def resolve_network(chain_id: Optional[int] = None) -> NetworkConfig:
    """Get network config by chain ID, falling back to the default network."""
    network = get_network(chain_id) if chain_id is not None else None
    return network or NETWORKS[DEFAULT_NETWORK]


def get_default_provider(chain_id: Optional[int] = None, rpc_url: Optional[str] = None) -> Web3:
    """
    Build a read-only Web3 provider for a chain.

    No request is sent until the provider is used.

    Args:
        chain_id: Chain to connect to, or None for the default network
        rpc_url: Custom RPC URL, or None to use the network default
    """
    network = resolve_network(chain_id)
    effective_rpc = rpc_url if rpc_url else network.rpc_url
    return Web3(Web3.HTTPProvider(effective_rpc))

