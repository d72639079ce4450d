"""
Beacon

Heartbeat-based liveness monitor: hosts report in, a periodic sweep
declares the silent ones down, and state changes are announced.
"""

__version__ = "0.1.0"
