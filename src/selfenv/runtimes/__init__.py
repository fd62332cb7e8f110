"""Provisioning of the uv helper and interpreter distributions."""
