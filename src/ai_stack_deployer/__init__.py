"""Provisioning and rollout of the on-premises AI stack."""

__version__ = "0.3.0"
