"""air - a local-first AI agent with cloud failover."""

__version__ = "0.1.0"
