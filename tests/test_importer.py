"""Tests for BatchImporter: batching, per-URL isolation, review and store sync."""

from unittest.mock import AsyncMock, MagicMock, call

import pytest

from parsely.exceptions import FetchError
from parsely.importer import BatchImporter, load_urls, unique_urls
from parsely.review import AutoReviewer
from parsely.store import NotionRecipeStore

from conftest import BLOG_HTML, CARBONARA, api_error, page_with

RECIPE_HTML = page_with(CARBONARA)


def urls(count):
    return [f"https://example.com/recipes/{i}" for i in range(count)]


@pytest.fixture
def fetcher():
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=RECIPE_HTML)
    return fetcher


@pytest.fixture
def store():
    store = MagicMock(spec=NotionRecipeStore)
    store.find_by_url = AsyncMock(return_value=None)
    store.create = AsyncMock(side_effect=lambda recipe: f"page-{recipe.url.rsplit('/', 1)[-1]}")
    store.update = AsyncMock()
    return store


@pytest.fixture
def reviewer():
    reviewer = MagicMock()
    reviewer.confirm_overwrite = AsyncMock(return_value=False)
    reviewer.review = AsyncMock(side_effect=lambda recipe: recipe)
    return reviewer


@pytest.fixture
def make_importer(fetcher, store, reviewer, no_sleep):
    def factory(**kwargs):
        options = {"reviewer": reviewer, "sleep": no_sleep}
        options.update(kwargs)
        return BatchImporter(options.pop("fetcher", fetcher), options.pop("store", store), **options)
    return factory


# ──────────────────────────────────────────────
# Batching
# ──────────────────────────────────────────────


async def test_seven_urls_run_in_two_batches(make_importer, fetcher, no_sleep):
    fetched_before_pause = []
    no_sleep.side_effect = lambda delay: fetched_before_pause.append(fetcher.fetch.await_count)

    result = await make_importer(batch_size=5).run(urls(7))

    assert result.batches == 2
    assert fetched_before_pause == [5]
    assert no_sleep.await_args_list == [call(1.0)]
    assert fetcher.fetch.await_count == 7
    assert [item.url for item in result.succeeded] == urls(7)
    assert result.total == 7


async def test_single_batch_has_no_pause(make_importer, no_sleep):
    result = await make_importer().run(urls(3))

    assert result.batches == 1
    no_sleep.assert_not_awaited()


async def test_duplicate_urls_processed_once(make_importer, fetcher):
    url = "https://example.com/recipes/1"

    result = await make_importer().run([url, f" {url} ", url, ""])

    assert result.total == 1
    fetcher.fetch.assert_awaited_once_with(url)


def test_batch_size_must_be_positive(fetcher, store):
    with pytest.raises(ValueError):
        BatchImporter(fetcher, store, batch_size=0)


# ──────────────────────────────────────────────
# Per-URL outcomes
# ──────────────────────────────────────────────


async def test_failures_do_not_abort_siblings(make_importer, fetcher):
    pages = {
        "https://example.com/recipes/0": RECIPE_HTML,
        "https://example.com/recipes/1": BLOG_HTML,
        "https://example.com/recipes/2": FetchError("Failed to render https://example.com/recipes/2"),
        "https://example.com/recipes/3": RECIPE_HTML,
    }

    async def fetch(url):
        page = pages[url]
        if isinstance(page, Exception):
            raise page
        return page

    fetcher.fetch.side_effect = fetch

    result = await make_importer(batch_size=2).run(list(pages))

    assert [item.url for item in result.succeeded] == urls(4)[0::3]
    assert {item.url: item.error for item in result.failed} == {
        "https://example.com/recipes/1": "No valid recipe schema found",
        "https://example.com/recipes/2": "Failed to render https://example.com/recipes/2",
    }
    assert result.skipped == ()


async def test_store_errors_are_failures(make_importer, store):
    store.create.side_effect = RuntimeError("boom")

    result = await make_importer().run(urls(2))

    assert [item.error for item in result.failed] == ["boom", "boom"]


async def test_new_recipe_is_created(make_importer, store):
    result = await make_importer().run(["https://example.com/recipes/carbonara"])

    recipe = store.create.await_args.args[0]
    assert recipe.name == "Spaghetti Carbonara"
    assert recipe.source_url == "https://example.com/recipes/carbonara"
    assert result.succeeded[0].recipeId == "page-carbonara"


async def test_existing_recipe_declined_is_skipped(make_importer, fetcher, store, reviewer):
    store.find_by_url.return_value = "page-old"

    result = await make_importer().run(urls(1))

    assert result.skipped[0].reason == "Recipe already exists"
    reviewer.confirm_overwrite.assert_awaited_once_with(urls(1)[0], "page-old")
    fetcher.fetch.assert_not_awaited()
    store.create.assert_not_awaited()
    store.update.assert_not_awaited()


async def test_existing_recipe_accepted_is_updated(make_importer, store, reviewer):
    store.find_by_url.return_value = "page-old"
    reviewer.confirm_overwrite.return_value = True

    result = await make_importer().run(urls(1))

    store.update.assert_awaited_once()
    assert store.update.await_args.args[0] == "page-old"
    assert result.succeeded[0].recipeId == "page-old"
    store.create.assert_not_awaited()


async def test_validate_only_never_writes(make_importer, store):
    result = await make_importer().run(urls(2), validate_only=True)

    assert [item.recipeId for item in result.succeeded] == ["validated", "validated"]
    store.create.assert_not_awaited()
    store.update.assert_not_awaited()


# ──────────────────────────────────────────────
# Review
# ──────────────────────────────────────────────


async def test_single_url_is_reviewed(make_importer, reviewer, store):
    await make_importer().run(urls(1))

    reviewer.review.assert_awaited_once()
    store.create.assert_awaited_once()


async def test_single_url_review_cancelled(make_importer, reviewer, store):
    reviewer.review.side_effect = None
    reviewer.review.return_value = None

    result = await make_importer().run(urls(1))

    assert result.skipped[0].reason == "User cancelled"
    store.create.assert_not_awaited()


async def test_review_bypassed_for_many_urls(make_importer, reviewer):
    result = await make_importer().run(urls(3))

    reviewer.review.assert_not_awaited()
    assert len(result.succeeded) == 3


async def test_tags_added_to_keywords(make_importer, store):
    await make_importer().run(urls(1), tags=["weeknight", "pasta"])

    keywords = store.create.await_args.args[0].keywords
    assert keywords.count("pasta") == 1
    assert keywords[-1] == "weeknight"


# ──────────────────────────────────────────────
# With the real store client
# ──────────────────────────────────────────────


async def test_existing_recipe_issues_no_mutations(fetcher, notion, no_sleep):
    notion.databases.query.return_value = {"results": [{"id": "page-old"}]}
    store = NotionRecipeStore(database_id="db-1", client=notion, sleep=no_sleep)
    importer = BatchImporter(fetcher, store, reviewer=AutoReviewer(overwrite=False), sleep=no_sleep)

    result = await importer.run(urls(1))

    assert result.skipped[0].reason == "Recipe already exists"
    notion.pages.create.assert_not_awaited()
    notion.pages.update.assert_not_awaited()
    notion.blocks.delete.assert_not_awaited()
    notion.blocks.children.append.assert_not_awaited()


async def test_conflict_is_retried_once_then_succeeds(fetcher, notion):
    notion.pages.create.side_effect = [api_error(), {"id": "page-new"}]
    store_sleep = AsyncMock()
    store = NotionRecipeStore(database_id="db-1", client=notion, sleep=store_sleep)
    importer = BatchImporter(fetcher, store, sleep=AsyncMock())

    result = await importer.run(urls(1))

    assert result.failed == ()
    assert result.succeeded[0].recipeId == "page-new"
    assert store_sleep.await_args_list == [call(1.0)]
    assert notion.pages.create.await_count == 2


# ──────────────────────────────────────────────
# URL input
# ──────────────────────────────────────────────


def test_load_urls(tmp_path):
    path = tmp_path / "urls.txt"
    path.write_text(
        "https://example.com/a\n\n  https://example.com/b  \nhttps://example.com/a\n   \n",
        encoding="utf-8",
    )

    assert load_urls(path) == ["https://example.com/a", "https://example.com/b"]


def test_unique_urls_keeps_first_occurrence():
    assert unique_urls(["b", "a", "b", " c "]) == ["b", "a", "c"]
