"""
Sentiment / Risk Services

Trigger scoring, the append-only sentiment log, at-risk flag management and
the periodic trigger sweep.
"""
from .trigger_scorer import score, TRIGGER_WEIGHTS, AT_RISK_THRESHOLD
from .sentiment_log import SentimentLogWriter
from .risk_flags import RiskFlagManager
from .trigger_sweep import SentimentTriggerSweep

__all__ = [
    "score",
    "TRIGGER_WEIGHTS",
    "AT_RISK_THRESHOLD",
    "SentimentLogWriter",
    "RiskFlagManager",
    "SentimentTriggerSweep",
]
