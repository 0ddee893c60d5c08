"""
Version for solvault.
We keep a static __version__ (PEP 440); the RPC client sends it in its User-Agent.
"""

# Bump this when publishing
__version__ = "0.1.0"

__all__ = ["__version__"]
