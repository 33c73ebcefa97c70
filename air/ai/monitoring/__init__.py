"""
AI Monitoring Module - structured logs and query metrics.

Usage:
    from air.ai.monitoring import ai_monitor, configure_logging
"""

from air.ai.monitoring.monitor import AIMonitor, ai_monitor, configure_logging

__all__ = ["AIMonitor", "ai_monitor", "configure_logging"]
