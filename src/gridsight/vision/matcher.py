"""
Parallel template identification for a single inventory cell.

Every template of the candidate's slot size is scored against the candidate
crop with normalized squared-difference correlation; confidence is one minus
the best (lowest) score. When rotated scanning is enabled the candidate is
also rotated back by 90 degrees and scored against templates of the swapped
slot size.

An IconMatcher keeps the best result across calls, so scanning several
template sources with one matcher yields the overall winner. A later result
replaces the recorded one only when its confidence is strictly higher.
"""
from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple
import logging
import cv2
import numpy as np

from ..core.errors import NoUsableTemplatesError
from ..data.catalog import IconTemplate
from ..data.items import Item, ItemExtraInfo
from .geometry import IntVector
from .preprocess import rotate_ccw

logger = logging.getLogger(__name__)

TemplateBuckets = Mapping[IntVector, Mapping[str, IconTemplate]]


@dataclass(frozen=True)
class MatchResult:
    icon_key: Optional[str] = None
    item: Optional[Item] = None
    extra_info: Optional[ItemExtraInfo] = None
    confidence: float = 0.0
    position: IntVector = IntVector(0, 0)
    rotated: bool = False
    source: str = ""

    @property
    def found(self) -> bool:
        return self.item is not None


NO_MATCH = MatchResult()


def score_template(candidate: np.ndarray, template: np.ndarray) -> Tuple[float, Tuple[int, int]]:
    """Confidence in [0, 1] and top-left location of the best placement."""
    res = cv2.matchTemplate(candidate, template, cv2.TM_SQDIFF_NORMED)
    min_val, _, min_loc, _ = cv2.minMaxLoc(res)
    return float(min(1.0, max(0.0, 1.0 - min_val))), min_loc


class IconMatcher:
    def __init__(self, executor: Optional[Executor] = None, scan_rotated: bool = True):
        self.executor = executor
        self.scan_rotated = scan_rotated
        self.best: MatchResult = NO_MATCH

    def gather(self, slot_size: IntVector, buckets: TemplateBuckets) -> Tuple[List[IconTemplate], List[IconTemplate]]:
        """Templates for the candidate as-is and rotated."""
        upright = list(buckets.get(slot_size, {}).values())
        rotated: List[IconTemplate] = []
        if self.scan_rotated:
            rotated = list(buckets.get(slot_size.swapped(), {}).values())
        return upright, rotated

    def match(
        self,
        candidate: np.ndarray,
        slot_size: IntVector,
        buckets: TemplateBuckets,
        source: str = "",
    ) -> MatchResult:
        """Score candidate against buckets and return the running best.

        Raises NoUsableTemplatesError when neither orientation has templates.
        """
        upright, rotated = self.gather(slot_size, buckets)
        if not upright and not rotated:
            raise NoUsableTemplatesError(slot_size, source or None)

        if upright:
            self._adopt(self._best_of(candidate, upright, rotated=False, source=source))
        if rotated:
            self._adopt(self._best_of(rotate_ccw(candidate), rotated, rotated=True, source=source))
        return self.best

    def offer(self, result: MatchResult) -> MatchResult:
        """Adopt an externally produced result if it beats the running best."""
        self._adopt(result)
        return self.best

    def _adopt(self, result: MatchResult) -> None:
        if result.found and (not self.best.found or result.confidence > self.best.confidence):
            self.best = result

    def _best_of(self, candidate: np.ndarray, templates: List[IconTemplate], rotated: bool, source: str) -> MatchResult:
        ch, cw = candidate.shape[:2]
        usable = []
        for tpl in templates:
            th, tw = tpl.image.shape[:2]
            if th > ch or tw > cw:
                logger.warning(
                    "Candidate %dx%d smaller than template %s (%dx%d); skipped", cw, ch, tpl.key, tw, th
                )
                continue
            usable.append(tpl)
        if not usable:
            return NO_MATCH

        def run(tpl: IconTemplate):
            return tpl, score_template(candidate, tpl.image)

        if self.executor is not None:
            scored = list(self.executor.map(run, usable))
        else:
            with ThreadPoolExecutor(thread_name_prefix="gridsight-match") as pool:
                scored = list(pool.map(run, usable))

        best = NO_MATCH
        for tpl, (conf, loc) in scored:
            if best.item is None or conf > best.confidence:
                best = MatchResult(
                    icon_key=tpl.key,
                    item=tpl.item,
                    extra_info=tpl.extra_info,
                    confidence=conf,
                    position=IntVector(int(loc[0]), int(loc[1])),
                    rotated=rotated,
                    source=source,
                )
        logger.debug(
            "Best %s%s match: %s (%.3f) over %d template(s)",
            source + " " if source else "",
            "rotated" if rotated else "upright",
            best.icon_key,
            best.confidence,
            len(usable),
        )
        return best
