"""HSE topic and checklist response API routes."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from jobcards.api.deps import get_current_user, get_db, require_editor, require_member
from jobcards.models.db import (
    AppUser,
    HseQuestion,
    HseResponse,
    HseTopic,
    JobcardTask,
    TaskHseTopic,
)
from jobcards.models.schemas import (
    ChecklistQuestionResponse,
    ChecklistSummaryResponse,
    ChecklistTopicResponse,
    HseAnswersResult,
    HseAnswersSubmit,
    HseResponseRecord,
    HseTopicResponse,
)
from jobcards.planning.checklist import (
    ChecklistTopic,
    build_checklist,
    collect_new_responses,
    summarize,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Loading ───────────────────────────────────────────────────────────────────


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> JobcardTask:
    result = await session.execute(select(JobcardTask).where(JobcardTask.id == task_id))
    task = result.scalar_one_or_none()
    if not task:
        raise HTTPException(status_code=404, detail="Jobcard not found.")
    return task


async def list_topics(session: AsyncSession) -> list[HseTopic]:
    result = await session.execute(select(HseTopic).order_by(HseTopic.code.asc()))
    return list(result.scalars().all())


async def load_checklist(
    session: AsyncSession, task: JobcardTask
) -> tuple[list[HseTopic], list[uuid.UUID], list[ChecklistTopic]]:
    """Return all topics, the ids attached to *task*, and its assembled checklist."""
    attached_result = await session.execute(
        select(TaskHseTopic.topic_id).where(TaskHseTopic.task_id == task.id)
    )
    responses_result = await session.execute(
        select(HseResponse).where(HseResponse.task_id == task.id)
    )
    questions_result = await session.execute(
        select(HseQuestion).order_by(HseQuestion.topic_id.asc(), HseQuestion.sort_order.asc())
    )
    topics = await list_topics(session)
    attached_ids = list(attached_result.scalars().all())

    checklist = build_checklist(
        topics,
        questions_result.scalars().all(),
        attached_ids,
        responses_result.scalars().all(),
    )
    return topics, attached_ids, checklist


def checklist_payload(checklist: list[ChecklistTopic]) -> list[ChecklistTopicResponse]:
    payload = []
    for entry in checklist:
        questions = []
        for item in entry.questions:
            question = ChecklistQuestionResponse.model_validate(item.question)
            if item.response is not None:
                question.response = HseResponseRecord.model_validate(item.response)
            question.answered = item.answered
            questions.append(question)
        payload.append(
            ChecklistTopicResponse(
                topic=HseTopicResponse.model_validate(entry.topic), questions=questions
            )
        )
    return payload


def summary_payload(checklist: list[ChecklistTopic]) -> ChecklistSummaryResponse:
    summary = summarize(checklist)
    return ChecklistSummaryResponse(
        total=summary.total, answered=summary.answered, all_answered=summary.all_answered
    )


# ── Routes ────────────────────────────────────────────────────────────────────


@router.get("/hse/topics", response_model=list[HseTopicResponse])
async def get_topics(
    session: AsyncSession = Depends(get_db),
    _: AppUser = Depends(get_current_user),
):
    """List every HSE topic defined in the system, by code."""
    return await list_topics(session)


@router.put("/jobcards/{task_id}/hse/topics/{topic_id}")
async def attach_topic(
    task_id: uuid.UUID,
    topic_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Attach an HSE topic to a jobcard. Attaching twice is a no-op."""
    task = await get_task_or_404(session, task_id)
    await require_editor(session, task.projectnumber, user)

    topic = await session.get(HseTopic, topic_id)
    if topic is None:
        raise HTTPException(status_code=404, detail="HSE topic not found")

    await session.execute(
        pg_insert(TaskHseTopic)
        .values(task_id=task.id, topic_id=topic.id)
        .on_conflict_do_nothing(index_elements=["task_id", "topic_id"])
    )
    logger.info("Attached HSE topic %s to jobcard %s", topic.code, task.qr_slug)
    return {"task_id": str(task.id), "topic_id": str(topic.id), "attached": True}


@router.delete("/jobcards/{task_id}/hse/topics/{topic_id}")
async def detach_topic(
    task_id: uuid.UUID,
    topic_id: uuid.UUID,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Detach an HSE topic from a jobcard. Recorded responses are kept."""
    task = await get_task_or_404(session, task_id)
    await require_editor(session, task.projectnumber, user)

    await session.execute(
        delete(TaskHseTopic).where(
            TaskHseTopic.task_id == task.id, TaskHseTopic.topic_id == topic_id
        )
    )
    logger.info("Detached HSE topic %s from jobcard %s", topic_id, task.qr_slug)
    return {"task_id": str(task.id), "topic_id": str(topic_id), "attached": False}


@router.post("/jobcards/{task_id}/hse/responses", response_model=HseAnswersResult)
async def save_responses(
    task_id: uuid.UUID,
    data: HseAnswersSubmit,
    session: AsyncSession = Depends(get_db),
    user: AppUser = Depends(get_current_user),
):
    """Record first-time answers to a jobcard's HSE checklist.

    Any project member may answer. Answers are add-only: questions that
    already have a response keep it, including when two people submit at
    the same time.
    """
    task = await get_task_or_404(session, task_id)
    await require_member(session, task.projectnumber, user)

    _, _, checklist = await load_checklist(session, task)
    try:
        rows = collect_new_responses(checklist, data.answers, data.responder_name)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not rows:
        return HseAnswersResult(
            message="No new responses to save.",
            saved=0,
            checklist=checklist_payload(checklist),
            summary=summary_payload(checklist),
        )

    result = await session.execute(
        pg_insert(HseResponse)
        .values([{**row, "task_id": task.id, "responder_id": user.id} for row in rows])
        .on_conflict_do_nothing(index_elements=["task_id", "question_id"])
        .returning(HseResponse.id)
    )
    saved = len(result.scalars().all())
    await session.flush()
    if saved < len(rows):
        logger.info(
            "%d HSE answers on jobcard %s were already recorded by someone else",
            len(rows) - saved, task.qr_slug,
        )
    logger.info("Saved %d HSE responses on jobcard %s", saved, task.qr_slug)

    _, _, checklist = await load_checklist(session, task)
    return HseAnswersResult(
        message="HSE responses saved." if saved else "No new responses to save.",
        saved=saved,
        checklist=checklist_payload(checklist),
        summary=summary_payload(checklist),
    )
