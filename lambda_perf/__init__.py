"""
Lambda cold-start benchmark provisioning.

Deploys a fleet of benchmark functions from a runtime manifest and triggers
invocations across the (runtime, architecture, memory size) matrix.
"""

__version__ = "0.1.0"
