"""Test suite for the leadrelay webhook adapter.

Organized into three categories:

1. core/: Unit tests for core domain logic
   - No network, fast execution
   - Uses the in-memory fake transport

2. adapters/: Integration tests for adapter implementations
   - httpx transport against httpx.MockTransport
   - HTTP server on a real localhost socket

3. fakes/: Port implementations for testing
   - In-memory implementation of CrmTransportPort
"""
