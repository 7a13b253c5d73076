"""Integration tests for adapter implementations.

Tests verify that adapters correctly implement port interfaces
and handle external-system failures.
"""
