"""Read-only query selectors."""

from ops_kernel.selectors.entity_selector import EntitySelector

__all__ = ["EntitySelector"]
