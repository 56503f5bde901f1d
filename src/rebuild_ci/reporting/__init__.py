"""
Reporting pipeline progress back to GitHub and chat.
"""

from rebuild_ci.reporting.chat import ChatNotifier
from rebuild_ci.reporting.comments import CommentPoster, deployment_comment
from rebuild_ci.reporting.status import StatusReporter

__all__ = [
    "ChatNotifier",
    "CommentPoster",
    "StatusReporter",
    "deployment_comment",
]
