"""Background execution: Taskiq broker and APScheduler triggers."""

from __future__ import annotations

from .broker import broker, create_broker, start_taskiq, stop_taskiq

__all__ = ["broker", "create_broker", "start_taskiq", "stop_taskiq"]
