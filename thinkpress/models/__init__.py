from .user import User
from .post import Post, PostStatus
from .post_version import PostVersion
from .idea import Idea, post_idea, idea_relation
from .reference import Reference, ReferenceType

# 思路线索
from .thought_thread import ThoughtThread, ThreadNode, ThreadStatus, ThreadVisibility, NodeStatus

# 阅读统计
from .reading_stats import ReadingStats

__all__ = [
    "User",
    "Post",
    "PostStatus",
    "PostVersion",
    "Idea",
    "post_idea",
    "idea_relation",
    "Reference",
    "ReferenceType",
    # 思路线索
    "ThoughtThread",
    "ThreadNode",
    "ThreadStatus",
    "ThreadVisibility",
    "NodeStatus",
    # 阅读统计
    "ReadingStats",
]
