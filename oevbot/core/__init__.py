"""Core bidding components: auction math, chain access, quotes and lifecycle."""
