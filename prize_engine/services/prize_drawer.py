
import logging
import random
from typing import Sequence
from prize_engine.errors import NoEligibleSegment
from prize_engine.models.segment import WheelSegment

logger = logging.getLogger(__name__)


class PrizeDrawer:
    """Weighted random pick over a snapshot of active segments.

    ``probability`` is an unnormalized weight. A value is drawn uniformly from
    ``[0, total_weight)`` and the first segment whose cumulative weight exceeds
    it wins, so zero-weight segments can never be returned.

    ``rng`` is anything with a ``random()`` method returning a float in
    ``[0, 1)``; tests pass a fixed sequence.
    """

    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.SystemRandom()

    def draw(self, segments: Sequence[WheelSegment]) -> WheelSegment:
        weighted = [(segment, max(float(segment.probability or 0), 0.0)) for segment in segments]
        total = sum(weight for _, weight in weighted)
        if total <= 0:
            logger.warning("All %d active segments have zero weight", len(weighted))
            raise NoEligibleSegment()

        value = self.rng.random() * total
        cumulative = 0.0
        for segment, weight in weighted:
            cumulative += weight
            if cumulative > value:
                logger.info("Draw value=%.6f total=%.6f -> segment %s", value, total, segment.id)
                return segment

        # Float rounding can push value onto the total; fall back to the last winnable segment
        segment = next(s for s, w in reversed(weighted) if w > 0)
        logger.info("Draw value=%.6f total=%.6f -> segment %s (edge)", value, total, segment.id)
        return segment
