"""Pull-based SaaS adapters with composite cursor pagination."""

__version__ = "0.1.0"
