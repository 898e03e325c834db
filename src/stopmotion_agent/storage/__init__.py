"""
Storage Module
==============

Optional storage of uploaded source images. Generated frames are never stored.
"""

from stopmotion_agent.storage.media_store import (
    FileMediaStore,
    MediaStore,
    NullMediaStore,
    create_media_store,
)

__all__ = [
    "MediaStore",
    "NullMediaStore",
    "FileMediaStore",
    "create_media_store",
]
