"""
oevbot - OEV auction bidder

A bidding agent for oracle extractable value (OEV) auctions:
- Deterministic auction window and bid topic computation
- Bid placement on the auction network
- Award polling and cross-chain price feed update
- Fulfillment reporting and confirmation
"""

__version__ = "0.1.0"
