"""Quest player API endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from quest_player.auth import LearnerId
from quest_player.progress.schemas import LessonProgressOverview

from .dependencies import QuestServiceDep
from .schemas import (
    FormAnswersUpdate,
    FormSummaryUpdate,
    GoToStepRequest,
    QuestView,
    QuizSubmission,
    RoleSubmission,
    TableRowsUpdate,
    TransitionResponse,
    VideoProgressReport,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/lessons/{lesson_id}/quest", tags=["quest"])
admin_router = APIRouter(prefix="/api/v1/admin/lessons", tags=["quest-admin"])


@router.get("")
async def get_quest(lesson_id: UUID, learner_id: LearnerId, service: QuestServiceDep) -> QuestView:
    """Get the rendered quest lesson for the current learner."""
    return await service.get_view(learner_id, lesson_id)


# === Navigation ===


@router.post("/steps")
async def go_to_step(
    lesson_id: UUID,
    request: GoToStepRequest,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    """Jump to a step. Backward jumps always succeed; forward jumps pass the gates."""
    return await service.perform(learner_id, lesson_id, lambda c: c.go_to(request.index))


@router.post("/next")
async def next_step(lesson_id: UUID, learner_id: LearnerId, service: QuestServiceDep) -> TransitionResponse:
    """Advance past the current step if its gate is open."""
    return await service.perform(learner_id, lesson_id, lambda c: c.next())


@router.post("/back")
async def previous_step(lesson_id: UUID, learner_id: LearnerId, service: QuestServiceDep) -> TransitionResponse:
    return await service.perform(learner_id, lesson_id, lambda c: c.back())


@router.post("/finish")
async def finish_lesson(lesson_id: UUID, learner_id: LearnerId, service: QuestServiceDep) -> TransitionResponse:
    """Complete the last step and the lesson."""
    return await service.perform(learner_id, lesson_id, lambda c: c.finish())


# === Block events ===


@router.post("/blocks/{block_id}/complete")
async def complete_block(
    lesson_id: UUID,
    block_id: str,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    """Record a block's own completion (acknowledge, video end, table submit, form submit)."""
    return await service.perform(learner_id, lesson_id, lambda c: c.complete_block(block_id))


@router.post("/blocks/{block_id}/quiz")
async def submit_quiz(
    lesson_id: UUID,
    block_id: str,
    submission: QuizSubmission,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    """Submit survey answers; the derived role is stored with the progress."""
    return await service.perform(learner_id, lesson_id, lambda c: c.submit_quiz(block_id, submission.answers))


@router.post("/blocks/{block_id}/role")
async def submit_role(
    lesson_id: UUID,
    block_id: str,
    submission: RoleSubmission,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    return await service.perform(learner_id, lesson_id, lambda c: c.submit_role(block_id, submission.role))


@router.post("/blocks/{block_id}/video-progress")
async def report_video_progress(
    lesson_id: UUID,
    block_id: str,
    report: VideoProgressReport,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    """Report the watched percentage of a video."""
    return await service.perform(
        learner_id, lesson_id, lambda c: c.report_video_progress(block_id, report.percent)
    )


@router.put("/blocks/{block_id}/table-rows")
async def update_table_rows(
    lesson_id: UUID,
    block_id: str,
    update: TableRowsUpdate,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    return await service.perform(learner_id, lesson_id, lambda c: c.update_table_rows(block_id, update.rows))


@router.put("/blocks/{block_id}/form-answers")
async def update_form_answers(
    lesson_id: UUID,
    block_id: str,
    update: FormAnswersUpdate,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    return await service.perform(learner_id, lesson_id, lambda c: c.update_form_answers(block_id, update.answers))


@router.put("/blocks/{block_id}/form-summary")
async def set_form_summary(
    lesson_id: UUID,
    block_id: str,
    update: FormSummaryUpdate,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    return await service.perform(learner_id, lesson_id, lambda c: c.set_form_summary(block_id, update.summary))


@router.post("/blocks/{block_id}/reset")
async def reset_block(
    lesson_id: UUID,
    block_id: str,
    learner_id: LearnerId,
    service: QuestServiceDep,
) -> TransitionResponse:
    """Clear one block's recorded data; other steps are left alone."""
    return await service.perform(learner_id, lesson_id, lambda c: c.reset_block(block_id))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def reset_quest(lesson_id: UUID, learner_id: LearnerId, service: QuestServiceDep) -> None:
    """Delete all of the current learner's progress in the lesson."""
    await service.reset_learner(learner_id, lesson_id)


# === Administration ===


@admin_router.get("/{lesson_id}/quest-progress")
async def get_lesson_progress_overview(lesson_id: UUID, service: QuestServiceDep) -> LessonProgressOverview:
    """Progress of every learner in a quest lesson."""
    return await service.lesson_progress_overview(lesson_id)


@admin_router.delete("/{lesson_id}/quest-progress/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_learner_progress(lesson_id: UUID, user_id: UUID, service: QuestServiceDep) -> None:
    """Reset a learner's quest progress in a lesson."""
    if not await service.reset_learner(user_id, lesson_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No progress for user {user_id} in lesson {lesson_id}",
        )
