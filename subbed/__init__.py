"""Subbed - aggregated YouTube subscription feeds."""

from subbed.core.constants import APP_VERSION

__version__ = APP_VERSION
__all__ = ["__version__"]
