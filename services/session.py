from __future__ import annotations

import logging
from typing import Optional, Protocol, Union

import httpx

from config import Settings, settings as default_settings
from models import AnalysisFailure
from services.analysis_service import (
    AnalysisResult,
    RunState,
    compute_statistics,
    create_analysis_buffer,
)
from services.errors import AnalysisError
from services.geometry import BufferPolygon, GeoPoint

logger = logging.getLogger(__name__)

Outcome = Union[AnalysisResult, AnalysisFailure]


class ResultSink(Protocol):
    """What the map front-end exposes to an analysis session."""

    def clear(self) -> None: ...

    def show_loading(self, run_id: int) -> None: ...

    def hide_loading(self, run_id: int) -> None: ...

    def show_buffer(self, buffer: BufferPolygon) -> None: ...

    def show_result(self, outcome: Outcome) -> None: ...


class AnalysisSession:
    """Runs click-triggered analyses where each new run supersedes the previous one.

    Every run is tagged with a sequence number. Outcomes go through
    :meth:`_deliver`, which drops any outcome whose tag is no longer the latest,
    so a slow earlier run can never overwrite the result of a later click.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        sink: ResultSink,
        config: Optional[Settings] = None,
    ) -> None:
        self._client = client
        self._sink = sink
        self._config = config or default_settings
        self._latest_run = 0
        self.state = RunState.IDLE

    @property
    def latest_run(self) -> int:
        return self._latest_run

    def clear(self) -> None:
        """Drop the displayed result and discard whatever run is still in flight."""

        self._latest_run += 1
        self.state = RunState.IDLE
        self._sink.clear()

    async def run(self, center: GeoPoint, radius_m: int) -> Optional[Outcome]:
        """Analyse ``radius_m`` metres around ``center``.

        Returns the delivered outcome, or ``None`` when a newer run superseded
        this one before it finished.
        """

        self.clear()
        run_id = self._latest_run
        logger.info(
            "Run %s started at lon=%s, lat=%s, radius=%sm",
            run_id,
            center.longitude,
            center.latitude,
            radius_m,
        )
        self._sink.show_loading(run_id)
        try:
            buffer = create_analysis_buffer(center, radius_m, self._config)
            self._sink.show_buffer(buffer)
            outcome: Outcome
            try:
                statistics = await compute_statistics(
                    buffer,
                    self._client,
                    self._config,
                    on_stage=lambda stage: self._transition(run_id, stage),
                )
            except AnalysisError as exc:
                logger.warning("Run %s failed: %s", run_id, exc)
                self._transition(run_id, RunState.FAILED)
                outcome = exc.to_failure()
            else:
                outcome = AnalysisResult(
                    center=center,
                    radius_m=radius_m,
                    buffer=buffer,
                    coverage_id=self._config.coverage_id,
                    statistics=statistics,
                )
            return self._deliver(run_id, outcome)
        finally:
            self._sink.hide_loading(run_id)

    def _transition(self, run_id: int, state: RunState) -> None:
        if run_id == self._latest_run:
            self.state = state

    def _deliver(self, run_id: int, outcome: Outcome) -> Optional[Outcome]:
        if run_id != self._latest_run:
            logger.warning("Discarding outcome of run %s, run %s is newer", run_id, self._latest_run)
            return None
        if isinstance(outcome, AnalysisFailure):
            self._sink.clear()
        self._sink.show_result(outcome)
        return outcome
