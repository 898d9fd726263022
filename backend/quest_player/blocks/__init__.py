"""Block catalog: the authored, ordered content blocks of a lesson (read-only here)."""

from quest_player.blocks.schemas import DECORATIVE_BLOCK_TYPES, Block, BlockType, select_step_blocks


__all__ = [
    "DECORATIVE_BLOCK_TYPES",
    "Block",
    "BlockType",
    "select_step_blocks",
]
