"""CRM transport adapters.

Implementations of CrmTransportPort that talk to the CRM's HTTP API.
"""
