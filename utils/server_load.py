"""
Process load report logged after each completed scrape.
"""

import os
import time
from typing import Any, Dict

import psutil

from utils.logging import get_logger

logger = get_logger("server_load")


def format_elapsed(seconds: float) -> str:
    """Human readable duration: milliseconds, seconds, or minutes and seconds."""
    if seconds >= 60:
        minutes = int(seconds // 60)
        remaining = round(seconds % 60)
        return f"{minutes} minute{'s' if minutes > 1 else ''} {remaining} seconds"
    if seconds >= 1:
        return f"{seconds:.2f} seconds"
    return f"{int(seconds * 1000)} milliseconds"


def get_server_load(started_at: float) -> Dict[str, Any]:
    """Snapshot of this process's resource usage since ``started_at`` (epoch seconds)."""
    process = psutil.Process(os.getpid())
    elapsed = max(time.time() - started_at, 1e-6)

    memory = process.memory_info()
    cpu_times = process.cpu_times()
    cpu_seconds = cpu_times.user + cpu_times.system

    return {
        'elapsed': format_elapsed(elapsed),
        'memory_mb': round(memory.rss / (1024 * 1024), 2),
        'cpu_percent': round(cpu_seconds / elapsed * 100, 2),
        'memory_percent': round(process.memory_percent(), 2),
    }


def report_server_load(started_at: float) -> None:
    """Log the server load for a request that started at ``started_at``."""
    load = get_server_load(started_at)
    logger.info("Server load", **load)
