"""Human feedback queue."""

from autodidact.feedback.models import (
    FeedbackCandidate,
    FeedbackInsights,
    FeedbackItem,
    FeedbackStatus,
)
from autodidact.feedback.queue import FeedbackQueue

__all__ = [
    "FeedbackCandidate",
    "FeedbackInsights",
    "FeedbackItem",
    "FeedbackQueue",
    "FeedbackStatus",
]
