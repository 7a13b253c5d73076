"""External adapters for the leadrelay webhook adapter.

This package contains all external dependencies (httpx, HTTP servers,
hosting entry points) and provides implementations of the core port
interfaces.

Adapter Organization:

- crm/: Outbound transport to the CRM's add-contact API
- webhook/: Inbound HTTP server and serverless function entry point
"""
