"""
Simulation loop.

- processor: EventProcessor protocol and the default implementation
- simulator: Simulator that threads entity versions through the timeline
"""

from .processor import DefaultEventProcessor, EventProcessor
from .simulator import Simulator

__all__ = [
    "EventProcessor",
    "DefaultEventProcessor",
    "Simulator",
]
