"""
Cache invalidation bus keyed by resource type.

Services publish after every successful write; open views subscribe to
the resource types they display and refetch when notified. Each
resource type also keeps a version counter so pollers can detect
changes without subscribing.

Single-process only.
"""

from collections import defaultdict
from enum import Enum
from typing import Callable, Optional
import structlog

logger = structlog.get_logger(__name__)


class Resource(str, Enum):
    MARKET = "market"
    PRODUCT = "product"
    WAVE = "wave"
    EXCHANGE = "exchange"
    INCENTIVE = "incentive"


Listener = Callable[[Resource, Optional[str]], None]

_listeners: dict[Resource, list[Listener]] = defaultdict(list)
_versions: dict[Resource, int] = defaultdict(int)


def subscribe(resource: Resource, listener: Listener) -> Callable[[], None]:
    """
    Register a listener for one resource type.

    Args:
        resource: Resource type to watch
        listener: Called with (resource, resource_id) after each change

    Returns:
        Function that removes the listener again
    """
    _listeners[resource].append(listener)

    def unsubscribe() -> None:
        if listener in _listeners[resource]:
            _listeners[resource].remove(listener)

    return unsubscribe


def publish(resource: Resource, resource_id: Optional[str] = None) -> int:
    """
    Announce that a resource changed.

    A failing listener is logged and does not stop the others.

    Args:
        resource: Changed resource type
        resource_id: Changed row, or None for bulk changes

    Returns:
        New version of the resource type
    """
    _versions[resource] += 1
    version = _versions[resource]

    for listener in list(_listeners[resource]):
        try:
            listener(resource, resource_id)
        except Exception as e:
            logger.warning(
                "invalidation_listener_failed",
                resource=resource.value,
                error=str(e)
            )

    logger.debug(
        "resource_invalidated",
        resource=resource.value,
        resource_id=resource_id,
        version=version
    )
    return version


def version(resource: Resource) -> int:
    """Current version counter of a resource type."""
    return _versions[resource]


def reset() -> None:
    """Drop all listeners and counters."""
    _listeners.clear()
    _versions.clear()
