"""
Trigger Scorer

Maps a behavioral trigger to its fixed risk contribution.
Pure function - no side effects beyond a warning for unknown trigger types.
"""
import logging
from typing import Union

from ...models.db_models import TriggerType

logger = logging.getLogger(__name__)


TRIGGER_WEIGHTS = {
    TriggerType.INACTIVITY: 30,
    TriggerType.SUPPORT_CONTACT: 25,
    TriggerType.MISSING_DOCS: 25,
    TriggerType.UNOPENED_LETTERS: 20,
}

# Accumulated recent score at which a user is flagged at-risk
AT_RISK_THRESHOLD = 70


def parse_trigger_type(trigger_type: Union[TriggerType, str, None]):
    """Return the TriggerType for a raw value, or None when it is not a known trigger."""
    if isinstance(trigger_type, TriggerType):
        return trigger_type
    try:
        return TriggerType(trigger_type)
    except ValueError:
        return None


def score(trigger_type: Union[TriggerType, str, None]) -> int:
    """
    Score a trigger.

    Known triggers map to their weight. Unknown triggers are ignored:
    they score 0 and a warning is logged.
    """
    parsed = parse_trigger_type(trigger_type)
    if parsed is None:
        logger.warning(f"Ignoring unknown trigger type {trigger_type!r} (score 0)")
        return 0
    return TRIGGER_WEIGHTS[parsed]
