"""
Forum Module - Peer-support discussions.

Features:
- Posts filtered by category and keyword
- Comments attached to posts
- Like toggling on posts and comments
- Anonymous posting
"""

from mindspace.modules.forum.service import ForumService

__all__ = ["ForumService"]
