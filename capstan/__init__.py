"""Manifests, run configurations, image probing and hypervisor command lines for OSv unikernels."""

__version__ = "0.4.0"