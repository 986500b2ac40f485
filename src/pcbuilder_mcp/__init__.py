"""PC Builder MCP - build compatibility checking and marketplace price aggregation."""

__version__ = "0.1.0"
