"""Access — capability registry (роли и правила их администрирования)."""

from .registry import CapabilityRegistry

__all__ = [
    "CapabilityRegistry",
]
