"""SQL queries for reading the block catalog."""

GET_LESSON_BLOCKS_QUERY = """
SELECT id, block_type, content, sort_order
FROM lesson_blocks
WHERE lesson_id = :lesson_id
ORDER BY sort_order, created_at
"""
