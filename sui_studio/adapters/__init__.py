"""Outbound adapters: Sui JSON-RPC, faucet, Move compiler, keys."""
