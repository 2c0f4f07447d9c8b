"""Bottom-up directory size aggregation.

Two interchangeable strategies produce the same (path, size) results:

- depth-sorted: the whole tree is known up front
- dependency-counted: directories become ready as discovery proceeds
"""

from .cooperative import Cooperative
from .dependency_counted import (
    DependencyCountedAggregator,
    aggregate_dependency_counted,
)
from .depth_sorted import aggregate_depth_sorted, iter_depth_sorted

__all__ = [
    'Cooperative',
    'DependencyCountedAggregator',
    'aggregate_dependency_counted',
    'aggregate_depth_sorted',
    'iter_depth_sorted',
]
