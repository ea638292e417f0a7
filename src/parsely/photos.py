import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .importer import USER_CANCELLED, Outcome, with_tags
from .models import BatchResult, FailedItem, SkippedItem, SucceededItem
from .review import AutoReviewer, Reviewer
from .services.vision import ImageInput, RecipeVisionService, image_media_type
from .store import NotionRecipeStore

PathLike = Union[str, Path]


def read_image(path: PathLike) -> ImageInput:
    """Read a photo from disk, rejecting unsupported formats before any upload."""
    path = Path(path)
    image_media_type(path.name)
    return path.name, path.read_bytes()


class PhotoImporter:
    """Imports recipes read from photos: infer, review, create, then attach the photos."""

    def __init__(
        self,
        vision: RecipeVisionService,
        store: NotionRecipeStore,
        reviewer: Optional[Reviewer] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.vision = vision
        self.store = store
        self.reviewer = reviewer or AutoReviewer()
        self.logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        paths: Sequence[PathLike],
        single: bool = False,
        language: str = "english",
        tags: Sequence[str] = (),
    ) -> BatchResult:
        """
        Import photos one recipe per photo, or all photos as one recipe when single is set.

        Photos are processed one after the other; a failure on one photo
        does not stop the others.
        """
        start_time = datetime.now()
        if single:
            label = ", ".join(Path(p).name for p in paths)
            outcomes = [await self._process(label, paths, language, tags)]
        else:
            outcomes = [await self._process(Path(p).name, [p], language, tags) for p in paths]

        return BatchResult(
            succeeded=tuple(o for o in outcomes if isinstance(o, SucceededItem)),
            failed=tuple(o for o in outcomes if isinstance(o, FailedItem)),
            skipped=tuple(o for o in outcomes if isinstance(o, SkippedItem)),
            # photos run sequentially as a single pass
            batches=1 if outcomes else 0,
            start_time=start_time,
            end_time=datetime.now(),
        )

    async def _process(
        self, label: str, paths: Sequence[PathLike], language: str, tags: Sequence[str]
    ) -> Outcome:
        try:
            images: List[ImageInput] = [read_image(p) for p in paths]
            recipe = with_tags(await self.vision.infer_recipe(images, language=language), tags)

            recipe = await self.reviewer.review(recipe)
            if recipe is None:
                self.logger.info(f"Skipped {label}")
                return SkippedItem(url=label, reason=USER_CANCELLED)

            page_id = await self.store.create(recipe)
            for filename, data in images:
                await self.store.attach_photo(page_id, data, filename)
        except Exception as e:
            self.logger.warning(f"Failed to process {label}: {e}")
            return FailedItem(url=label, error=str(e) or type(e).__name__)

        self.logger.info(f"Imported {label} -> {page_id}")
        return SucceededItem(url=label, recipeId=page_id)
