"""
Core package for the AMM adapter client.

Settings and logging are imported by the modules that need them to avoid
circular imports between config, logging and the orchestration layer.
"""
