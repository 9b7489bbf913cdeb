"""
Escalation Engine
=================

The periodic driver: a queue that serializes ticks with writes, the tick
itself, and the APScheduler wrapper that fires it.
"""

from jobwatch.engine.queue import EngineQueue
from jobwatch.engine.scheduler import SLAScheduler
from jobwatch.engine.ticker import EscalationTicker, TickResult

__all__ = [
    "EngineQueue",
    "EscalationTicker",
    "SLAScheduler",
    "TickResult",
]
