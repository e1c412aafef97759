"""
Service layer modules orchestrate multi-request workflows (chunked media
uploads) on top of the lower-level executor.
"""

__all__ = [
    "media_service",
]
