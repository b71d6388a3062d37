"""Score level store.

The one shared copy of the score level configuration. Every widget reads
levels from here so simultaneously rendered gauges classify identically.

Before the first load, and whenever the backend cannot be reached, the
store serves the last known good set (the canonical five levels if nothing
was ever fetched). Failures are logged and recorded in ``error``; they are
never raised to readers.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from okr_dashboard.integrations.okr_api import OkrApiClient
from okr_dashboard.models import ScoreLevel
from okr_dashboard.scoring.levels import ScoreLevelSet
from okr_dashboard.state.sequencing import RequestSequencer

logger = logging.getLogger(__name__)

_SEQUENCE_KEY = "score-levels"


class ScoreLevelStore:
    """Lazily loaded, invalidatable cache of the score levels."""

    def __init__(self, client: OkrApiClient, sequencer: Optional[RequestSequencer] = None) -> None:
        self._client = client
        self._sequencer = sequencer or RequestSequencer()
        self._levels = ScoreLevelSet.defaults()
        self.has_fetched = False
        self.error: Optional[str] = None

    @property
    def levels(self) -> ScoreLevelSet:
        return self._levels

    def load(self) -> ScoreLevelSet:
        """Fetch the levels unless they have already been fetched."""
        if self.has_fetched and len(self._levels) > 0:
            return self._levels
        return self._fetch("Failed to load score levels")

    def refresh(self) -> ScoreLevelSet:
        """Drop the cached copy and fetch again."""
        self.has_fetched = False
        return self._fetch("Failed to refresh score levels")

    def save(self, levels: Sequence[ScoreLevel]) -> ScoreLevelSet:
        """Persist an edited configuration and make it current.

        The set is sorted and re-indexed before it is sent.

        Raises:
            httpx.HTTPError: If the backend rejects or cannot take the update.
        """
        ordered = ScoreLevelSet.of(levels).ensure_sorted()
        saved = self._client.update_score_levels(list(ordered))
        self._apply(saved or list(ordered))
        logger.info("Saved %d score levels", len(self._levels))
        return self._levels

    def reset(self) -> ScoreLevelSet:
        """Restore the backend defaults, then reload them.

        Raises:
            httpx.HTTPError: If the reset request fails.
        """
        self._client.reset_score_levels()
        logger.info("Score levels reset to defaults")
        return self.refresh()

    def _fetch(self, failure_message: str) -> ScoreLevelSet:
        ticket = self._sequencer.begin(_SEQUENCE_KEY)
        try:
            fetched = self._client.get_score_levels()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("%s, using last known levels: %s", failure_message, e)
            self.error = failure_message
            return self._levels

        if not self._sequencer.is_current(_SEQUENCE_KEY, ticket):
            logger.debug("Discarding superseded score level response")
            return self._levels

        self._apply(fetched)
        self.has_fetched = True
        return self._levels

    def _apply(self, levels: Sequence[ScoreLevel]) -> None:
        new_set = ScoreLevelSet.of(levels)
        if new_set.is_empty():
            logger.info("Backend returned no score levels, using defaults")
            new_set = ScoreLevelSet.defaults()
        self._levels = new_set
        self.error = None
