from .aggregation import AggregationService
from .assignment import AssignmentService
from .quiz import QuizService
from .quiz_session import QuizSession
from .weekly_script import WeeklyScriptService

__all__ = [
    "AggregationService",
    "AssignmentService",
    "QuizService",
    "QuizSession",
    "WeeklyScriptService",
]
