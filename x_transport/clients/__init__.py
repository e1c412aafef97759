"""
Client modules own the transport: request execution and stream reading.
"""

__all__ = [
    "executor",
    "streaming",
]
