"""FastAPI dependencies for the quest player."""

from typing import Annotated

from fastapi import Depends

from quest_player.blocks.service import BlockCatalog, LessonBlockCatalog
from quest_player.config import get_settings
from quest_player.progress.protocols import ProgressStore
from quest_player.progress.service import SqlProgressStore

from .gates import GateOptions
from .service import QuestService


def get_progress_store() -> ProgressStore:
    return SqlProgressStore()


def get_block_catalog() -> BlockCatalog:
    return LessonBlockCatalog()


def get_gate_options() -> GateOptions:
    """Gate settings from the application configuration."""
    settings = get_settings()
    return GateOptions(
        default_video_threshold=settings.QUEST_VIDEO_THRESHOLD_DEFAULT,
        allow_empty_video_bypass=settings.QUEST_ALLOW_EMPTY_VIDEO_BYPASS,
    )


def get_quest_service(
    store: Annotated[ProgressStore, Depends(get_progress_store)],
    catalog: Annotated[BlockCatalog, Depends(get_block_catalog)],
    options: Annotated[GateOptions, Depends(get_gate_options)],
) -> QuestService:
    return QuestService(store, catalog, options)


QuestServiceDep = Annotated[QuestService, Depends(get_quest_service)]
