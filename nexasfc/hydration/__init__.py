"""
NexaSFC Hydration
=================

From data sections to client globals:

- registry: Per-render window attribute claims
- aggregator: Payload collection and merging
- hydrator: JSON data scripts
- links: Endpoint-based loading strategies
- validator / detectors / injector: Safe placement in the page
"""

from nexasfc.hydration.registry import HydrationClaim, HydrationRegistry
from nexasfc.hydration.validator import SafeInjectionValidator
from nexasfc.hydration.detectors import EarliestInjectionDetector, MountPointDetector
from nexasfc.hydration.injector import HydrationInjector
from nexasfc.hydration.hydrator import Hydrator
from nexasfc.hydration.links import LinkStrategyRenderer
from nexasfc.hydration.aggregator import HydrationDataAggregator

__all__ = [
    "HydrationClaim",
    "HydrationRegistry",
    "SafeInjectionValidator",
    "EarliestInjectionDetector",
    "MountPointDetector",
    "HydrationInjector",
    "Hydrator",
    "LinkStrategyRenderer",
    "HydrationDataAggregator",
]
