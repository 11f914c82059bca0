"""Infracost MCP - cost estimation and Infracost Cloud governance as MCP tools."""

__version__ = "0.1.0"
