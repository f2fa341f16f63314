"""
Pipeline orchestration for harvesting one listing source.

This module coordinates one run:
1. Render the listing page (fatal on navigation failure)
2. Extract candidate records
3. Deduplicate candidates
4. Truncate to the batch size
5. Enrich records missing a date from their own pages
6. Return records in listing order

State moves Idle -> ListingFetched -> Extracted -> Deduplicated ->
Truncated -> Enriching -> Done, or to Failed on an orchestrator-level fault.
Item-level enrichment failures never fail the run. The pipeline performs no
I/O besides the navigations it delegates to the renderer.

run_sources() drives several sources in sequence over one shared renderer,
with an optional rich progress bar.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)

from .config import AppConfig, BatchConfig, resolve_batch
from .core.dedup import dedup_records, key_func
from .core.errors import NavigationError, RendererUnavailable
from .core.extractor import extract_listing
from .core.types import (
    ListingResult,
    RunResult,
    ReadinessPolicy,
    RunState,
    SourceConfig,
)
from .enricher import DetailEnricher
from .logging_utils import log_event
from .render.base import Renderer
from .render.document import Document
from .render.factory import create_renderer
from .tracing import record_span_error, set_span_output, start_span


class Pipeline:
    """Runs the two-stage harvest for a single source.

    Attributes:
        source: The source definition (listing URL and rules)
        renderer: Started renderer shared with other runs
        batch: Effective batch settings for this source
        title_similarity_threshold: Optional fuzzy title dedup threshold
    """

    def __init__(
        self,
        source: SourceConfig,
        renderer: Renderer,
        batch: BatchConfig | None = None,
        title_similarity_threshold: int | None = None,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        self.renderer = renderer
        self.batch = batch or BatchConfig()
        self.title_similarity_threshold = title_similarity_threshold
        self._logger = logger or logging.getLogger("feed_harvest")
        self._result = RunResult(source=source.name, state=RunState.IDLE, state_history=[RunState.IDLE])

    @property
    def state(self) -> RunState:
        return self._result.state

    def _advance(self, state: RunState) -> None:
        self._result.state = state
        self._result.state_history.append(state)

    async def run(self) -> RunResult:
        """Execute the pipeline once and return its result.

        Returns:
            RunResult in state DONE (records possibly empty) or FAILED
            (single failure reason, no records)
        """
        source = self.source
        result = self._result
        stats = result.stats
        log_event(
            self._logger,
            "Run start",
            event="run_start",
            source=source.name,
            url=source.listing_url,
            batch_size=self.batch.batch_size,
            concurrency=self.batch.concurrency,
        )

        with start_span(
            "feed_harvest.run",
            input_value={"source": source.name, "url": source.listing_url},
        ) as run_span:
            try:
                listing = await self._fetch_and_extract()
            except (NavigationError, RendererUnavailable) as exc:
                record_span_error(run_span, str(exc))
                return self.fail(exc)
            except Exception as exc:  # noqa: BLE001
                record_span_error(run_span, f"{type(exc).__name__}: {exc}")
                return self.fail(exc)

            if listing.empty:
                result.empty = True
                log_event(
                    self._logger,
                    "Listing empty",
                    level=logging.WARNING,
                    event="listing_empty",
                    source=source.name,
                    attempts=stats.listing_attempts,
                )

            stats.candidates = len(listing.records)
            unique = dedup_records(
                listing.records,
                key=key_func(source.dedup_key),
                title_similarity_threshold=self.title_similarity_threshold,
            )
            stats.unique = len(unique)
            self._advance(RunState.DEDUPLICATED)
            log_event(
                self._logger,
                "Dedup",
                level=logging.DEBUG,
                event="dedup",
                source=source.name,
                candidates=stats.candidates,
                unique=stats.unique,
            )

            # Truncate only after dedup
            kept = unique[: self.batch.batch_size]
            stats.kept = len(kept)
            self._advance(RunState.TRUNCATED)
            log_event(
                self._logger,
                "Truncate",
                level=logging.DEBUG,
                event="truncate",
                source=source.name,
                kept=stats.kept,
                batch_size=self.batch.batch_size,
            )

            records = kept
            if source.enrichment is not None and kept:
                self._advance(RunState.ENRICHING)
                enricher = DetailEnricher(self.renderer, source.enrichment, self.batch, self._logger)
                with start_span(
                    "feed_harvest.enrich",
                    input_value={"count": len(kept)},
                ) as enrich_span:
                    outcomes = await enricher.enrich(kept)
                    set_span_output(
                        enrich_span,
                        {"failed": sum(1 for outcome in outcomes if outcome.failed)},
                    )
                result.outcomes = outcomes
                records = [outcome.record for outcome in outcomes]
                stats.enriched = sum(1 for record in records if record.enriched)
                stats.enrichment_failed = sum(1 for outcome in outcomes if outcome.failed)

            result.records = records
            self._advance(RunState.DONE)
            log_event(
                self._logger,
                "Run done",
                event="run_done",
                source=source.name,
                empty=result.empty,
                **stats.to_dict(),
            )
            set_span_output(run_span, {"records": len(records), **stats.to_dict()})
            return result

    async def _fetch_and_extract(self) -> ListingResult:
        """Render and extract the listing, re-rendering benign-empty pages.

        Each retry stretches the readiness wait by retry_wait_multiplier.
        Navigation errors are not retried here.
        """
        source = self.source
        readiness = source.readiness
        attempts = self.batch.empty_retries + 1
        listing = ListingResult(records=[])

        for attempt in range(attempts):
            if attempt:
                readiness = readiness.scaled(self.batch.retry_wait_multiplier)
                log_event(
                    self._logger,
                    "Listing retry",
                    event="listing_retry",
                    source=source.name,
                    attempt=attempt + 1,
                    wait_timeout_seconds=readiness.wait_timeout_seconds,
                )
            self._result.stats.listing_attempts += 1
            document = await self._render_listing(readiness)
            if self.state is not RunState.LISTING_FETCHED:
                self._advance(RunState.LISTING_FETCHED)

            listing = extract_listing(document, source.extraction)
            if not listing.empty:
                break

        self._advance(RunState.EXTRACTED)
        log_event(
            self._logger,
            "Listing extracted",
            event="listing_fetched",
            source=source.name,
            containers=listing.containers,
            candidates=len(listing.records),
            dropped=listing.dropped,
            field_absent=listing.field_absent,
        )
        return listing

    async def _render_listing(self, readiness: ReadinessPolicy) -> Document:
        with start_span(
            "feed_harvest.listing",
            input_value={"url": self.source.listing_url},
        ):
            return await self.renderer.render(
                self.source.listing_url,
                readiness,
                self.batch.navigation_timeout_seconds,
            )

    def fail(self, exc: Exception) -> RunResult:
        """Move the run to FAILED with a single reason and no records."""
        result = self._result
        result.records = []
        result.outcomes = []
        result.failure = f"{type(exc).__name__}: {exc}"
        self._advance(RunState.FAILED)
        log_event(
            self._logger,
            "Run failed",
            level=logging.ERROR,
            event="run_failed",
            source=self.source.name,
            error=result.failure,
        )
        return result


async def run_pipeline(
    source: SourceConfig,
    renderer: Renderer,
    cfg: AppConfig,
    logger: logging.Logger | None = None,
) -> RunResult:
    """Run one source with the app-level settings and its batch overrides."""
    batch = resolve_batch(cfg.batch, source.batch)
    pipeline = Pipeline(
        source,
        renderer,
        batch=batch,
        title_similarity_threshold=cfg.dedup.title_similarity_threshold,
        logger=logger,
    )
    return await pipeline.run()


@dataclass
class HarvestReport:
    """Results of a multi-source harvest, in source order."""

    results: list[RunResult] = field(default_factory=list)

    @property
    def failed(self) -> list[RunResult]:
        return [result for result in self.results if not result.ok]


async def run_sources_async(
    sources: list[SourceConfig],
    cfg: AppConfig,
    renderer: Renderer | None = None,
    logger: logging.Logger | None = None,
    progress: Progress | None = None,
) -> HarvestReport:
    """Run sources one after another through a single renderer.

    A failing source never stops the remaining ones. If the renderer cannot
    be started at all, every source is reported as failed.
    """
    logger = logger or logging.getLogger("feed_harvest")
    renderer = renderer or create_renderer(cfg.render)
    report = HarvestReport()
    task = progress.add_task("Sources", total=len(sources)) if progress else None

    try:
        await renderer.start()
    except Exception as exc:  # noqa: BLE001
        for source in sources:
            report.results.append(Pipeline(source, renderer, logger=logger).fail(exc))
        return report

    try:
        for source in sources:
            if progress is not None and task is not None:
                progress.update(task, description=f"Harvest {source.name}")
            result = await run_pipeline(source, renderer, cfg, logger)
            report.results.append(result)
            if progress is not None and task is not None:
                progress.advance(task, 1)
    finally:
        await renderer.close()
    return report


def run_sources(
    sources: list[SourceConfig],
    cfg: AppConfig,
    renderer: Renderer | None = None,
    logger: logging.Logger | None = None,
    show_progress: bool = True,
    console: Console | None = None,
) -> HarvestReport:
    """Synchronous entry point used by the CLI."""
    if not show_progress:
        return asyncio.run(run_sources_async(sources, cfg, renderer, logger))

    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console or Console(),
    )
    with progress:
        return asyncio.run(run_sources_async(sources, cfg, renderer, logger, progress))
