"""Webhook receiver adapters.

Expose the core services to the outside world:
- Standalone HTTP server for the chat widget's webhook calls
- Serverless function entry point for hosted deployments
"""
