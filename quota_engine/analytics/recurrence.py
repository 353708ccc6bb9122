"""
Recurrence rule evaluation.

Rules are opaque JSON owned by the caller; the engine only asks "does this
rule occur on day X". A failing evaluator must never break ranking, so
errors read as "does not occur".
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

RecurrenceEvaluator = Callable[[Dict[str, Any], date], bool]


def occurs_on(
    evaluator: RecurrenceEvaluator,
    rule: Optional[Dict[str, Any]],
    day: date,
) -> bool:
    """Evaluate rule on day. Missing rules and evaluator errors return False."""
    if not rule:
        return False
    try:
        return bool(evaluator(rule, day))
    except Exception as e:
        logger.warning(f"Recurrence evaluation failed for rule {rule!r} on {day}: {e}")
        return False
