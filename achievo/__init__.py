"""Achievo credential service.

Coordinates certificates, NFTs, rewards, roles and payments across a NEAR
contract, an IPFS pinning service and a SQL index mirror.
"""

__version__ = "0.1.0"
