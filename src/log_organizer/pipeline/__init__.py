"""
Batch orchestration.
"""

from .orchestrator import LogOrganizerPipeline, decode_body

__all__ = [
    "LogOrganizerPipeline",
    "decode_body",
]
