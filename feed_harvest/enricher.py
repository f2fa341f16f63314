"""
Detail-page enrichment.

For records whose listing entry lacked a date, the enricher visits the
record's own page and resolves the date there. Failures are isolated per
record: a timeout, navigation fault or missing field attaches the fallback
sentinel and marks the record as not enriched, but the record is always kept
and sibling records are never affected.

Visits run through a worker pool bounded by BatchConfig.concurrency; a limit
of 1 visits pages strictly one after another. Outcomes are written back by
index, so the output order always equals the input order.
"""

from __future__ import annotations

import asyncio
import logging

from .config import BatchConfig
from .core.errors import (
    EnrichmentNavigationError,
    EnrichmentTimeout,
    FieldAbsent,
    NavigationError,
    NavigationTimeout,
    RendererUnavailable,
)
from .core.selectors import resolve_field
from .core.types import (
    UNKNOWN_DATE,
    EnrichmentOutcome,
    EnrichmentRule,
    EnrichmentStatus,
    Record,
)
from .logging_utils import log_event
from .render.base import Renderer


def needs_enrichment(record: Record, rule: EnrichmentRule) -> bool:
    """Whether a record should be visited under the given rule."""
    if rule.force:
        return True
    return not record.date or record.date in (UNKNOWN_DATE, rule.fallback)


class DetailEnricher:
    """Resolves missing fields from each record's own page.

    Attributes:
        renderer: Renderer used for detail navigations
        rule: Enrichment rule (date chain, fallback sentinel, readiness)
        batch: Concurrency limit and per-navigation timeout
    """

    def __init__(
        self,
        renderer: Renderer,
        rule: EnrichmentRule,
        batch: BatchConfig,
        logger: logging.Logger | None = None,
    ):
        self.renderer = renderer
        self.rule = rule
        self.batch = batch
        self._logger = logger or logging.getLogger("feed_harvest.enricher")

    async def enrich(self, records: list[Record]) -> list[EnrichmentOutcome]:
        """Enrich records with bounded parallelism.

        Args:
            records: Records in listing order

        Returns:
            One outcome per input record, in the same order
        """
        outcomes: list[EnrichmentOutcome | None] = [None] * len(records)
        semaphore = asyncio.Semaphore(self.batch.concurrency)

        async def _worker(index: int, record: Record) -> None:
            if not needs_enrichment(record, self.rule):
                outcomes[index] = EnrichmentOutcome(record=record, status=EnrichmentStatus.SKIPPED)
                return
            async with semaphore:
                outcomes[index] = await self.enrich_one(record)

        await asyncio.gather(*(_worker(i, r) for i, r in enumerate(records)))
        return [outcome for outcome in outcomes if outcome is not None]

    async def enrich_one(self, record: Record) -> EnrichmentOutcome:
        """Visit one record's page; never raises for per-item failures."""
        timeout = self.batch.navigation_timeout_seconds
        try:
            # Overall bound covers navigation plus the readiness wait
            date = await asyncio.wait_for(
                self._fetch_date(record),
                timeout=timeout + self.rule.readiness.wait_timeout_seconds,
            )
        except (asyncio.TimeoutError, NavigationTimeout) as exc:
            error = EnrichmentTimeout(str(exc) or f"Timed out after {timeout}s ({record.url})")
            return self._soft_fail(record, EnrichmentStatus.TIMEOUT, error)
        except (NavigationError, RendererUnavailable) as exc:
            error = EnrichmentNavigationError(str(exc))
            return self._soft_fail(record, EnrichmentStatus.NAVIGATION_ERROR, error)
        except FieldAbsent as exc:
            return self._soft_fail(record, EnrichmentStatus.FIELD_ABSENT, exc)
        except Exception as exc:  # noqa: BLE001
            error = EnrichmentNavigationError(f"{type(exc).__name__}: {exc}")
            return self._soft_fail(record, EnrichmentStatus.NAVIGATION_ERROR, error)

        enriched = Record(title=record.title, url=record.url, date=date, enriched=True)
        log_event(
            self._logger,
            "Enrich ok",
            level=logging.DEBUG,
            event="enrich_ok",
            url=record.url,
            date=date,
        )
        return EnrichmentOutcome(record=enriched, status=EnrichmentStatus.OK)

    async def _fetch_date(self, record: Record) -> str:
        document = await self.renderer.render(
            record.url,
            self.rule.readiness,
            self.batch.navigation_timeout_seconds,
        )
        date = resolve_field(document, self.rule.date)
        if not date:
            raise FieldAbsent("date", record.url)
        return date

    def _soft_fail(
        self,
        record: Record,
        status: EnrichmentStatus,
        error: Exception,
    ) -> EnrichmentOutcome:
        # A forced visit never discards a date the listing already supplied
        date = record.date if record.date and record.date != UNKNOWN_DATE else self.rule.fallback
        kept = Record(title=record.title, url=record.url, date=date, enriched=False)
        log_event(
            self._logger,
            "Enrich failed",
            level=logging.WARNING,
            event="enrich_failed",
            url=record.url,
            status=status.value,
            error=str(error),
        )
        return EnrichmentOutcome(record=kept, status=status, error=str(error))
