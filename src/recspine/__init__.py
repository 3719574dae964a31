"""
rec-spine - recording identity resolution, deduplication and categorization.

Sits between the recording ingestion channels and the archival systems and
answers two questions for every observation: has this exact recording
instance been processed already, and which operational bucket does it
belong to.
"""

__version__ = "0.1.0"
