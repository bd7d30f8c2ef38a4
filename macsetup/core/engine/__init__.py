"""Provisioning engine — applier and orchestrator."""
