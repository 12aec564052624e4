"""
Command line interface for soapbridge.
"""

from .main import cli

__all__ = ["cli"]
