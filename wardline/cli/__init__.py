"""
Wardline CLI.

Usage:
    wardline compile
    wardline inspect [--json]
    wardline check
    wardline clear-cache
"""
