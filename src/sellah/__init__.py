"""Order lifecycle core for the Sellah storefront back office."""

__version__ = "0.1.0"
