"""HTTP API for the AMM adapter client."""
