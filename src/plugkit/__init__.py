"""plugkit — release and network tooling for assistant plugin bundles.

Two independent tools:
  - release: keep plugin.json and marketplace.json versions in lockstep
  - network: switch the active preset (devnet / testnet / mainnet)
"""

__version__ = "0.1.0"

CONFIG_FILENAME = "plugkit.yaml"
