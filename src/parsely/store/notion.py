import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Set

from notion_client import AsyncClient
from notion_client.errors import HTTPResponseError, RequestTimeoutError

from ..exceptions import InvalidRecipeError, PartialUpdateError, StoreError
from ..models import Recipe
from .blocks import Block, build_content_blocks, build_properties, chunked, image_block
from .retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_ATTEMPTS, with_retry

STORE_ERRORS = (HTTPResponseError, RequestTimeoutError)

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def _wrap(message: str, error: Exception, **details: Any) -> StoreError:
    return StoreError(
        f"{message}: {error}",
        code=getattr(error, "code", None),
        status=getattr(error, "status", None),
        details=details,
    )


@dataclass
class ContentReplacement:
    """Progress of replacing a page body; lets a retried replacement resume where it stopped."""
    page_id: str
    old_block_ids: List[str]
    chunks: List[List[Block]]
    deleted: Set[str] = field(default_factory=set)
    appended: int = 0

    @property
    def started(self) -> bool:
        return bool(self.deleted) or self.appended > 0


class NotionRecipeStore:
    """Idempotent upsert of recipes into a Notion database keyed by source URL."""

    def __init__(
        self,
        token: Optional[str] = None,
        database_id: str = "",
        client: Optional[AsyncClient] = None,
        retry_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        delete_pause: float = 0.1,
        append_pause: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the store client.

        Args:
            token: Notion integration token, used when no client is given
            database_id: ID of the recipe database
            client: Optional pre-built Notion client
            retry_attempts: Attempts for each store call on conflict errors
            retry_base_delay: First backoff delay in seconds
            delete_pause: Pause after each block deletion, in seconds
            append_pause: Pause between the deletions and the new content
            sleep: Coroutine used for every pause and backoff
            logger: Logger for store operations
        """
        if client is None and not token:
            raise ValueError("A Notion token or client is required")
        self._owns_client = client is None
        self.client = client or AsyncClient(auth=token)
        self.database_id = database_id
        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay
        self.delete_pause = delete_pause
        self.append_pause = append_pause
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    async def _retry(self, operation: Callable[[], Awaitable[Any]], description: str) -> Any:
        return await with_retry(
            operation,
            max_attempts=self.retry_attempts,
            base_delay=self.retry_base_delay,
            sleep=self.sleep,
            description=description,
            log=self.logger,
        )

    @staticmethod
    def _validate(recipe: Recipe) -> None:
        if not recipe.name or not recipe.name.strip():
            raise InvalidRecipeError("Recipe name is empty", details={"url": recipe.source_url})

    async def find_by_url(self, url: str) -> Optional[str]:
        """
        Look up a recipe page by its exact source URL.

        Returns:
            The page ID, or None when no page matches

        Raises:
            StoreError: If the query fails
        """
        try:
            response = await self._retry(
                lambda: self.client.databases.query(
                    database_id=self.database_id,
                    filter={"property": "URL", "url": {"equals": url}},
                    page_size=1,
                ),
                "query by URL",
            )
        except STORE_ERRORS as e:
            raise _wrap("Failed to search for recipe", e, url=url) from e

        results = response.get("results", [])
        return results[0]["id"] if results else None

    async def create(self, recipe: Recipe) -> str:
        """
        Create a recipe page with its full content.

        Returns:
            The ID of the new page

        Raises:
            InvalidRecipeError: If the recipe has no name
            StoreError: If the store rejects the page or its content
        """
        self._validate(recipe)
        properties = build_properties(recipe)
        chunks = list(chunked(build_content_blocks(recipe)))

        try:
            page = await self._retry(
                lambda: self.client.pages.create(
                    parent={"database_id": self.database_id},
                    properties=properties,
                    children=chunks[0],
                ),
                "create page",
            )
        except STORE_ERRORS as e:
            raise _wrap("Failed to create recipe", e, url=recipe.source_url) from e

        page_id = page["id"]
        self.logger.info(f"Created page {page_id} for '{recipe.name}'")

        for index, chunk in enumerate(chunks[1:], start=2):
            try:
                await self._retry(
                    lambda chunk=chunk: self.client.blocks.children.append(
                        block_id=page_id, children=chunk
                    ),
                    f"append content chunk {index}/{len(chunks)}",
                )
            except STORE_ERRORS as e:
                raise _wrap(
                    f"Page {page_id} created but its content is incomplete",
                    e,
                    page_id=page_id,
                    appended_chunks=index - 1,
                    total_chunks=len(chunks),
                ) from e

        return page_id

    async def update(self, page_id: str, recipe: Recipe) -> None:
        """
        Replace the properties and content of an existing recipe page.

        The new body is built before anything is changed. Properties are
        updated in one call; the body is replaced by deleting the old blocks
        and appending the new ones. That replacement is retried as a unit and
        resumes after the blocks it already handled.

        Raises:
            InvalidRecipeError: If the recipe has no name
            StoreError: If the property update or the block listing fails
            PartialUpdateError: If the page body was left partly replaced
        """
        self._validate(recipe)
        properties = build_properties(recipe)
        chunks = list(chunked(build_content_blocks(recipe)))

        try:
            await self._retry(
                lambda: self.client.pages.update(page_id=page_id, properties=properties),
                "update properties",
            )
            self.logger.debug(f"Updated properties of page {page_id}")
            old_block_ids = await self._list_block_ids(page_id)
        except STORE_ERRORS as e:
            raise _wrap("Failed to update recipe", e, page_id=page_id) from e

        self.logger.debug(f"Replacing {len(old_block_ids)} blocks on page {page_id}")
        replacement = ContentReplacement(page_id, old_block_ids, chunks)
        try:
            await self._retry(lambda: self._replace_content(replacement), "replace content")
        except STORE_ERRORS as e:
            details = {
                "page_id": page_id,
                "deleted_blocks": len(replacement.deleted),
                "old_blocks": len(old_block_ids),
                "appended_chunks": replacement.appended,
                "total_chunks": len(chunks),
            }
            if replacement.started:
                raise PartialUpdateError(
                    f"Content of page {page_id} was only partly replaced "
                    f"({len(replacement.deleted)}/{len(old_block_ids)} old blocks deleted, "
                    f"{replacement.appended}/{len(chunks)} new chunks appended): {e}",
                    code=getattr(e, "code", None),
                    status=getattr(e, "status", None),
                    details=details,
                ) from e
            raise _wrap("Failed to update recipe", e, **details) from e

        self.logger.info(f"Updated page {page_id} for '{recipe.name}'")

    async def _list_block_ids(self, page_id: str) -> List[str]:
        block_ids = []
        cursor = None
        while True:
            kwargs = {"block_id": page_id, "page_size": 100}
            if cursor:
                kwargs["start_cursor"] = cursor
            response = await self._retry(
                lambda kwargs=kwargs: self.client.blocks.children.list(**kwargs),
                "list blocks",
            )
            block_ids.extend(block["id"] for block in response.get("results", []))
            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                return block_ids

    async def _replace_content(self, replacement: ContentReplacement) -> None:
        for block_id in replacement.old_block_ids:
            if block_id in replacement.deleted:
                continue
            await self.client.blocks.delete(block_id=block_id)
            replacement.deleted.add(block_id)
            await self.sleep(self.delete_pause)

        if replacement.appended == 0:
            await self.sleep(self.append_pause)

        while replacement.appended < len(replacement.chunks):
            await self.client.blocks.children.append(
                block_id=replacement.page_id,
                children=replacement.chunks[replacement.appended],
            )
            replacement.appended += 1

    async def attach_photo(self, page_id: str, image_bytes: bytes, filename: str) -> None:
        """
        Append a photo to a recipe page as an inline data URL image.

        Raises:
            StoreError: If the store refuses the image
        """
        suffix = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        mime_type = IMAGE_MIME_TYPES.get(suffix, "image/jpeg")
        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('utf-8')}"

        try:
            await self._retry(
                lambda: self.client.blocks.children.append(
                    block_id=page_id, children=[image_block(data_url)]
                ),
                "attach photo",
            )
        except STORE_ERRORS as e:
            message = str(e)
            if "file size" in message:
                raise StoreError("Image file is too large. Please use a smaller image.",
                                 code=getattr(e, "code", None), status=getattr(e, "status", None)) from e
            if "file type" in message:
                raise StoreError("Unsupported image format. Please use JPEG or PNG.",
                                 code=getattr(e, "code", None), status=getattr(e, "status", None)) from e
            raise _wrap("Failed to attach photo", e, page_id=page_id, filename=filename) from e

        self.logger.info(f"Attached {filename} to page {page_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
