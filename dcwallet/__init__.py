"""Wallet building blocks: status values, SQL queries, run locks, notification delivery and EOS/Ethereum RPC clients."""

__version__ = "0.1.0"