"""SQL queries for quest progress operations."""


# SQLAlchemy with asyncpg doesn't support ::type casting in parameters
# We use CAST(... AS jsonb) and pass documents as JSON strings instead

GET_STATE_QUERY = """
SELECT user_id, lesson_id, state_json, completed_at, updated_at
FROM lesson_progress_state
WHERE user_id = :user_id
AND lesson_id = :lesson_id
"""

# Top-level keys of the patch replace the stored ones; untouched keys survive.
# completed_at is write-once.
MERGE_STATE_QUERY = """
INSERT INTO lesson_progress_state (id, user_id, lesson_id, state_json, completed_at, created_at, updated_at)
VALUES (gen_random_uuid(), :user_id, :lesson_id, CAST(:patch AS jsonb), :completed_at, NOW(), NOW())
ON CONFLICT (user_id, lesson_id)
DO UPDATE SET
    state_json = lesson_progress_state.state_json || EXCLUDED.state_json,
    completed_at = COALESCE(lesson_progress_state.completed_at, EXCLUDED.completed_at),
    updated_at = NOW()
"""

UPSERT_BLOCK_RESPONSE_QUERY = """
INSERT INTO user_lesson_progress (id, user_id, lesson_id, block_id, response, attempts, completed_at, created_at, updated_at)
VALUES (gen_random_uuid(), :user_id, :lesson_id, :block_id, CAST(:response AS jsonb), 1, NOW(), NOW(), NOW())
ON CONFLICT (user_id, lesson_id, block_id)
DO UPDATE SET
    response = EXCLUDED.response,
    attempts = user_lesson_progress.attempts + 1,
    completed_at = NOW(),
    updated_at = NOW()
"""

DELETE_BLOCK_RESPONSE_QUERY = """
DELETE FROM user_lesson_progress
WHERE user_id = :user_id
AND lesson_id = :lesson_id
AND block_id = :block_id
"""

DELETE_LESSON_RESPONSES_QUERY = """
DELETE FROM user_lesson_progress
WHERE user_id = :user_id
AND lesson_id = :lesson_id
"""

DELETE_STATE_QUERY = """
DELETE FROM lesson_progress_state
WHERE user_id = :user_id
AND lesson_id = :lesson_id
"""

LIST_LESSON_STATES_QUERY = """
SELECT user_id, lesson_id, state_json, completed_at, updated_at
FROM lesson_progress_state
WHERE lesson_id = :lesson_id
ORDER BY updated_at DESC
"""
