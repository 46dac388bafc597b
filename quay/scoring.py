import time

# Seconds of queue-jump granted by one unit of priority.
PRIORITY_STEP = 1.0


def score(*, delay: float = 0.0, priority: int = 0, now: float | None = None) -> float:
    """Fold scheduling time and urgency into a single sort key.

    Lower scores dequeue first, so a delay pushes a job back while priority
    pulls it forward by ``PRIORITY_STEP`` seconds per unit.
    """
    now = time.time() if now is None else now

    return now + delay - priority * PRIORITY_STEP
