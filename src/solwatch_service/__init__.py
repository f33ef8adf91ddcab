"""Solana market data proxy and pump.fun activity monitor."""
