"""Safety module - discovery scope and budget limits."""

from urllens.safety.scope import DiscoveryBudget, DiscoveryScope

__all__ = ["DiscoveryBudget", "DiscoveryScope"]
