"""
Contrarian market-making agent for Solana tokens.

Watches a token's transaction stream, classifies each transaction as a buy
or a sell, aggregates recent trades into fixed-size windows and places a
counter-cyclical order when a window shows net directional pressure.
"""

__version__ = "0.1.0"
