"""Unit tests for core domain logic.

Tests use the fake transport from tests.fakes to avoid network calls.
"""
