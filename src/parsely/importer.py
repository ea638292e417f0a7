import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Union

from .fetcher import PageFetcher
from .models import BatchResult, FailedItem, Recipe, SkippedItem, SucceededItem
from .review import AutoReviewer, Reviewer
from .schema import SchemaExtractor, SchemaTransformer
from .store import NotionRecipeStore

Outcome = Union[SucceededItem, FailedItem, SkippedItem]

RECIPE_EXISTS = "Recipe already exists"
USER_CANCELLED = "User cancelled"


def unique_urls(urls: Iterable[str]) -> List[str]:
    """Trim URLs, drop blanks and keep the first occurrence of each."""
    seen = set()
    result = []
    for url in urls:
        url = url.strip()
        if url and url not in seen:
            seen.add(url)
            result.append(url)
    return result


def load_urls(path: Union[str, Path]) -> List[str]:
    """Read a plain text file with one URL per line."""
    with open(path, "r", encoding="utf-8") as f:
        return unique_urls(f.read().splitlines())


def with_tags(recipe: Recipe, tags: Sequence[str]) -> Recipe:
    if not tags:
        return recipe
    keywords = list(recipe.keywords)
    keywords.extend(tag for tag in tags if tag not in keywords)
    return recipe.model_copy(update={"keywords": keywords})


class BatchImporter:
    """Imports recipes from URLs into the store in sequential batches of concurrent tasks."""

    def __init__(
        self,
        fetcher: PageFetcher,
        store: NotionRecipeStore,
        reviewer: Optional[Reviewer] = None,
        extractor: Optional[SchemaExtractor] = None,
        transformer: Optional[SchemaTransformer] = None,
        batch_size: int = 5,
        batch_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.fetcher = fetcher
        self.store = store
        self.reviewer = reviewer or AutoReviewer()
        self.logger = logger or logging.getLogger(__name__)
        self.extractor = extractor or SchemaExtractor(logger=self.logger)
        self.transformer = transformer or SchemaTransformer()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep

    async def run(
        self,
        urls: Sequence[str],
        validate_only: bool = False,
        tags: Sequence[str] = (),
    ) -> BatchResult:
        """
        Import every URL exactly once.

        URLs of one batch are processed concurrently; batches run one after
        the other with a pause in between. Any error for a URL is recorded
        as a failure for that URL only.

        Args:
            urls: Source URLs; duplicates are processed once
            validate_only: Stop after extraction and never write to the store
            tags: Extra keywords added to every recipe

        Returns:
            The outcome of every URL, in input order
        """
        start_time = datetime.now()
        urls = unique_urls(urls)
        interactive = len(urls) == 1
        batches = [urls[i:i + self.batch_size] for i in range(0, len(urls), self.batch_size)]

        outcomes: List[Outcome] = []
        for index, batch in enumerate(batches, 1):
            self.logger.info(f"Processing batch {index}/{len(batches)} ({len(batch)} URLs)")
            outcomes.extend(await asyncio.gather(*(
                self._process(url, interactive, validate_only, tags) for url in batch
            )))
            if index < len(batches):
                await self.sleep(self.batch_delay)

        result = BatchResult(
            succeeded=tuple(o for o in outcomes if isinstance(o, SucceededItem)),
            failed=tuple(o for o in outcomes if isinstance(o, FailedItem)),
            skipped=tuple(o for o in outcomes if isinstance(o, SkippedItem)),
            batches=len(batches),
            start_time=start_time,
            end_time=datetime.now(),
        )
        self.logger.info(
            f"Import finished: {len(result.succeeded)} succeeded, "
            f"{len(result.failed)} failed, {len(result.skipped)} skipped"
        )
        for item in result.failed:
            self.logger.error(f"Failed {item.url}: {item.error}")
        return result

    async def _process(
        self, url: str, interactive: bool, validate_only: bool, tags: Sequence[str]
    ) -> Outcome:
        try:
            outcome = await self._import(url, interactive, validate_only, tags)
        except Exception as e:
            self.logger.warning(f"Failed to import {url}: {e}")
            return FailedItem(url=url, error=str(e) or type(e).__name__)

        if isinstance(outcome, SkippedItem):
            self.logger.info(f"Skipped {url}: {outcome.reason}")
        else:
            self.logger.info(f"Imported {url} -> {outcome.recipeId}")
        return outcome

    async def _import(
        self, url: str, interactive: bool, validate_only: bool, tags: Sequence[str]
    ) -> Outcome:
        existing_id = await self.store.find_by_url(url)
        if existing_id and not await self.reviewer.confirm_overwrite(url, existing_id):
            return SkippedItem(url=url, reason=RECIPE_EXISTS)

        html = await self.fetcher.fetch(url)
        self.logger.debug(f"Fetched {url} ({len(html)} bytes)")
        candidates = self.extractor.extract(html, url=url)

        if validate_only:
            return SucceededItem(url=url, recipeId="validated")

        recipe = with_tags(self.transformer.transform(candidates[0], source_url=url), tags)

        if interactive:
            recipe = await self.reviewer.review(recipe)
            if recipe is None:
                return SkippedItem(url=url, reason=USER_CANCELLED)

        if existing_id:
            await self.store.update(existing_id, recipe)
            return SucceededItem(url=url, recipeId=existing_id)

        page_id = await self.store.create(recipe)
        return SucceededItem(url=url, recipeId=page_id)
