from .assignment_repository import AssignmentRepository
from .news_repository import NewsRepository
from .progress_repository import ProgressRepository
from .quiz_repository import QuizRepository
from .scrape_log_repository import ScrapeLogRepository
from .submission_repository import SubmissionRepository
from .weekly_script_repository import WeeklyScriptRepository

__all__ = [
    "AssignmentRepository",
    "NewsRepository",
    "ProgressRepository",
    "QuizRepository",
    "ScrapeLogRepository",
    "SubmissionRepository",
    "WeeklyScriptRepository",
]
