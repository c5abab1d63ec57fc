"""FastAPI stakeholder, objective and questionnaire endpoints.

GET/POST          /v1/projects/{project_id}/stakeholders
PATCH/DELETE      /v1/projects/{project_id}/stakeholders/{stakeholder_id}
GET/POST          /v1/projects/{project_id}/objectives
PATCH/DELETE      /v1/projects/{project_id}/objectives/{objective_id}
GET               /v1/questionnaire/questions                     - grouped by ISO domain
GET               /v1/projects/{project_id}/questionnaire/answers
PUT               /v1/projects/{project_id}/questionnaire/answers/{question_id}
GET               /v1/projects/{project_id}/questionnaire/progress

Mutations reset the matching completed phase; pass ``confirm_reset=true``
to acknowledge.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from isms.api.dependencies import (
    get_current_user_id,
    get_objective_service,
    get_questionnaire_service,
    get_stakeholder_service,
    require_project,
)
from isms.models.common import AnswerStatus, ObjectiveStatus
from isms.models.records import (
    Objective,
    QuestionnaireAnswer,
    QuestionnaireProgress,
    QuestionnaireQuestion,
    Stakeholder,
)
from isms.workflow.records import ObjectiveService, QuestionnaireService, StakeholderService

router = APIRouter(
    prefix="/v1/projects",
    tags=["records"],
    dependencies=[Depends(require_project)],
)

questions_router = APIRouter(prefix="/v1/questionnaire", tags=["records"])


class StakeholderRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    role: str | None = None
    email: str | None = None
    responsibilities: str | None = None


class UpdateStakeholderRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    role: str | None = None
    email: str | None = None
    responsibilities: str | None = None


class ObjectiveRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    target_date: date | None = None
    status: ObjectiveStatus = ObjectiveStatus.NOT_STARTED


class UpdateObjectiveRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    target_date: date | None = None
    status: ObjectiveStatus | None = None


class AnswerRequest(BaseModel):
    answer_status: AnswerStatus | None = None
    evidence_notes: str | None = None


class ProgressResponse(BaseModel):
    answered: int
    total: int
    percentage: int


# ---------------------------------------------------------------------------
# Stakeholders
# ---------------------------------------------------------------------------


@router.get("/{project_id}/stakeholders", response_model=list[Stakeholder])
async def list_stakeholders(
    project_id: UUID,
    service: StakeholderService = Depends(get_stakeholder_service),
) -> list[Stakeholder]:
    return [Stakeholder.model_validate(r) for r in await service.list_for_project(project_id)]


@router.post("/{project_id}/stakeholders", status_code=201, response_model=Stakeholder)
async def create_stakeholder(
    project_id: UUID,
    body: StakeholderRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: StakeholderService = Depends(get_stakeholder_service),
) -> Stakeholder:
    row = await service.create(
        project_id, user_id=user_id, confirm_reset=confirm_reset, **body.model_dump(),
    )
    return Stakeholder.model_validate(row)


@router.patch("/{project_id}/stakeholders/{stakeholder_id}", response_model=Stakeholder)
async def update_stakeholder(
    project_id: UUID,
    stakeholder_id: UUID,
    body: UpdateStakeholderRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: StakeholderService = Depends(get_stakeholder_service),
) -> Stakeholder:
    row = await service.update(
        project_id, stakeholder_id, body.model_dump(exclude_unset=True),
        user_id=user_id, confirm_reset=confirm_reset,
    )
    return Stakeholder.model_validate(row)


@router.delete("/{project_id}/stakeholders/{stakeholder_id}", status_code=204)
async def delete_stakeholder(
    project_id: UUID,
    stakeholder_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: StakeholderService = Depends(get_stakeholder_service),
) -> None:
    await service.delete(project_id, stakeholder_id, user_id=user_id, confirm_reset=confirm_reset)


# ---------------------------------------------------------------------------
# Objectives
# ---------------------------------------------------------------------------


@router.get("/{project_id}/objectives", response_model=list[Objective])
async def list_objectives(
    project_id: UUID,
    service: ObjectiveService = Depends(get_objective_service),
) -> list[Objective]:
    return [Objective.model_validate(r) for r in await service.list_for_project(project_id)]


@router.post("/{project_id}/objectives", status_code=201, response_model=Objective)
async def create_objective(
    project_id: UUID,
    body: ObjectiveRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: ObjectiveService = Depends(get_objective_service),
) -> Objective:
    row = await service.create(
        project_id, user_id=user_id, confirm_reset=confirm_reset, **body.model_dump(),
    )
    return Objective.model_validate(row)


@router.patch("/{project_id}/objectives/{objective_id}", response_model=Objective)
async def update_objective(
    project_id: UUID,
    objective_id: UUID,
    body: UpdateObjectiveRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: ObjectiveService = Depends(get_objective_service),
) -> Objective:
    row = await service.update(
        project_id, objective_id, body.model_dump(exclude_unset=True),
        user_id=user_id, confirm_reset=confirm_reset,
    )
    return Objective.model_validate(row)


@router.delete("/{project_id}/objectives/{objective_id}", status_code=204)
async def delete_objective(
    project_id: UUID,
    objective_id: UUID,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: ObjectiveService = Depends(get_objective_service),
) -> None:
    await service.delete(project_id, objective_id, user_id=user_id, confirm_reset=confirm_reset)


# ---------------------------------------------------------------------------
# Questionnaire
# ---------------------------------------------------------------------------


@questions_router.get("/questions", response_model=dict[str, list[QuestionnaireQuestion]])
async def list_questions(
    service: QuestionnaireService = Depends(get_questionnaire_service),
) -> dict[str, list[QuestionnaireQuestion]]:
    return await service.questions_by_domain()


@router.get("/{project_id}/questionnaire/answers", response_model=list[QuestionnaireAnswer])
async def list_answers(
    project_id: UUID,
    service: QuestionnaireService = Depends(get_questionnaire_service),
) -> list[QuestionnaireAnswer]:
    return [QuestionnaireAnswer.model_validate(r) for r in await service.answers(project_id)]


@router.put("/{project_id}/questionnaire/answers/{question_id}",
            response_model=QuestionnaireAnswer)
async def answer_question(
    project_id: UUID,
    question_id: UUID,
    body: AnswerRequest,
    confirm_reset: bool = False,
    user_id: UUID = Depends(get_current_user_id),
    service: QuestionnaireService = Depends(get_questionnaire_service),
) -> QuestionnaireAnswer:
    row = await service.answer(
        project_id, question_id,
        user_id=user_id, confirm_reset=confirm_reset, **body.model_dump(),
    )
    return QuestionnaireAnswer.model_validate(row)


@router.get("/{project_id}/questionnaire/progress", response_model=ProgressResponse)
async def questionnaire_progress(
    project_id: UUID,
    service: QuestionnaireService = Depends(get_questionnaire_service),
) -> ProgressResponse:
    progress: QuestionnaireProgress = await service.progress(project_id)
    return ProgressResponse(
        answered=progress.answered, total=progress.total, percentage=progress.percentage,
    )
