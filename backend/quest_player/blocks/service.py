"""Read access to the lesson block catalog."""

import json
import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy import text

from quest_player.database.session import async_session_maker

from .queries import GET_LESSON_BLOCKS_QUERY
from .schemas import Block


logger = logging.getLogger(__name__)


class BlockCatalog(Protocol):
    """Protocol for reading the ordered blocks of a lesson."""

    async def list_blocks(self, lesson_id: UUID) -> list[Block]:
        """Return all blocks of a lesson in lesson order."""
        ...


class LessonBlockCatalog(BlockCatalog):
    """Block catalog backed by the ``lesson_blocks`` table."""

    async def list_blocks(self, lesson_id: UUID) -> list[Block]:
        """Return all blocks of a lesson in lesson order."""
        async with async_session_maker() as session:
            result = await session.execute(text(GET_LESSON_BLOCKS_QUERY), {"lesson_id": str(lesson_id)})

            blocks = []
            for row in result:
                content = row.content
                # Parse content if the driver hands back a JSON string
                if isinstance(content, str):
                    try:
                        content = json.loads(content)
                    except json.JSONDecodeError:
                        logger.warning(f"Failed to parse content for block {row.id}: {content}")
                        content = {}

                blocks.append(Block(id=row.id, block_type=row.block_type, content=content, sort_order=row.sort_order))

            return blocks
