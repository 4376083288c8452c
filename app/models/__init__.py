from .assignment import Assignment, AssignmentSubmission
from .news import AINews
from .quiz import Question, Quiz, QuizProgress, Submission
from .scrape_log import ScrapeLog
from .weekly_script import WeeklyScript

__all__ = [
    "AINews",
    "ScrapeLog",
    "Quiz",
    "Question",
    "QuizProgress",
    "Submission",
    "WeeklyScript",
    "Assignment",
    "AssignmentSubmission",
]
