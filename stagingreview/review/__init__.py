"""Staging review workflow: selection, edit sessions and the queue controller."""

from stagingreview.review.controller import ReviewController, auto_confirm
from stagingreview.review.edit_session import EditSession
from stagingreview.review.models import (
    ActionOutcome,
    ControllerState,
    EditSessionView,
    ReviewSnapshot,
)
from stagingreview.review.selection import SelectionModel
from stagingreview.review.stats import StatsAggregator

__all__ = [
    "ActionOutcome",
    "ControllerState",
    "EditSession",
    "EditSessionView",
    "ReviewController",
    "ReviewSnapshot",
    "SelectionModel",
    "StatsAggregator",
    "auto_confirm",
]
