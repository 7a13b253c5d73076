"""Fake implementations of core ports for testing.

- FakeCrmTransport: Scripted CRM responses and captured requests
"""

from .crm import FakeCrmTransport, crm_error, crm_success

__all__ = ["FakeCrmTransport", "crm_error", "crm_success"]
