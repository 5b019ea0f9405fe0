"""Describe stage: fetch full group descriptions in API-limited batches."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from typing import Iterator, Sequence

from ..exceptions import BatchDescribeError, DiscoveryCancelled, TransportError
from . import DESCRIBE_BATCH_SIZE, DESCRIBE_PAGE_SIZE, AutoScalingPages
from .cancellation import CancelToken, check
from .models import ResourceRecord

logger = logging.getLogger(__name__)


def chunks(lst: Sequence[str], size: int) -> Iterator[list[str]]:
    """Yield successive fixed-size chunks from lst."""
    for i in range(0, len(lst), size):
        yield list(lst[i : i + size])


def describe_batch(
    pages: AutoScalingPages,
    batch: list[str],
    index: int,
    *tokens: CancelToken | None,
) -> list[ResourceRecord]:
    """Describe one batch of group names, following every page."""
    where = f"batch describe (batch {index})"
    records: list[ResourceRecord] = []
    try:
        for token in tokens:
            check(token, where)
        for page in pages.describe_groups_pages(batch, DESCRIBE_PAGE_SIZE):
            records.extend(page)
            for token in tokens:
                check(token, where)
    except TransportError as exc:
        raise BatchDescribeError(
            f"error listing autoscaling groups (batch {index}): {exc}", batch_index=index
        ) from exc
    logger.debug(
        "Batch %d: %d names -> %d groups", index, len(batch), len(records),
        extra={"stage": "batch describe", "batch_index": index},
    )
    return records


def iter_descriptions(
    pages: AutoScalingPages,
    names: Sequence[str],
    cancel: CancelToken | None = None,
) -> Iterator[ResourceRecord]:
    """Lazily describe names batch by batch, in candidate order. No API call for an empty list."""
    for index, batch in enumerate(chunks(names, DESCRIBE_BATCH_SIZE)):
        yield from describe_batch(pages, batch, index, cancel)


def _describe_batch_or_stop_siblings(
    pages: AutoScalingPages,
    batch: list[str],
    index: int,
    cancel: CancelToken | None,
    siblings: CancelToken,
) -> list[ResourceRecord]:
    # siblings is set on the worker thread, before the next queued batch can start
    try:
        return describe_batch(pages, batch, index, cancel, siblings)
    except Exception:
        siblings.cancel("sibling batch failed")
        raise


def describe_concurrently(
    pages: AutoScalingPages,
    names: Sequence[str],
    workers: int,
    cancel: CancelToken | None = None,
) -> list[ResourceRecord]:
    """Describe batches on a bounded thread pool; results keep candidate (batch) order.

    The first failing batch cancels the batches that have not started and makes
    running siblings stop at their next page boundary; its error is raised.
    """
    batches = list(chunks(names, DESCRIBE_BATCH_SIZE))
    if not batches:
        return []

    siblings = CancelToken()
    with ThreadPoolExecutor(max_workers=min(workers, len(batches)), thread_name_prefix="describe") as pool:
        futures: list[Future] = [
            pool.submit(_describe_batch_or_stop_siblings, pages, batch, index, cancel, siblings)
            for index, batch in enumerate(batches)
        ]
        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        errors = [f.exception() for f in futures if f in done and f.exception() is not None]
        if errors:
            for future in futures:
                future.cancel()
            # batches stopped by the sibling token are not the root cause
            raise next((e for e in errors if not isinstance(e, DiscoveryCancelled)), errors[0])

    records: list[ResourceRecord] = []
    for future in futures:
        records.extend(future.result())
    return records
