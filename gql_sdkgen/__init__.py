"""Typed Python SDK generator for table-oriented GraphQL APIs."""

__version__ = "0.1.0"
