"""arq worker settings modules.

Import paths for arq CLI:
    arq karmaledger.workers.settings.FeedbackWorkerSettings
    arq karmaledger.workers.settings.SuggestionWorkerSettings
"""

from __future__ import annotations

from karmaledger.workers.feedback_worker import FeedbackWorkerSettings
from karmaledger.workers.suggestion_worker import SuggestionWorkerSettings

__all__ = ["FeedbackWorkerSettings", "SuggestionWorkerSettings"]
