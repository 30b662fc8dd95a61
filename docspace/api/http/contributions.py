from fastapi import APIRouter, Depends, status
from typing import List
import uuid

from docspace.api.http.dependencies import get_contribution_workflow, get_workspace_service
from docspace.api.http.workspace import document_response
from docspace.core.auth import get_current_actor
from docspace.domains.workspace.entities import Contribution
from docspace.domains.workspace.schemas import (
    ContributionCreate, ContributionReject, ContributionResponse, ContributionReviewResponse
)
from docspace.domains.workspace.services import WorkspaceService
from docspace.domains.workspace.workflow import ContributionWorkflow

router = APIRouter(tags=["contributions"])


def contribution_response(contribution: Contribution) -> ContributionResponse:
    return ContributionResponse(
        uuid=contribution.uuid,
        document_id=contribution.document_id,
        contributor_id=contribution.contributor_id,
        content=contribution.text,
        status=contribution.status,
        submitted_at=contribution.submitted_at,
        reviewer_id=contribution.reviewer_id,
        reviewed_at=contribution.reviewed_at,
        rejection_reason=contribution.rejection_reason
    )


@router.post(
    "/workspace/team/{team_id}/documents/{document_uuid}/contributions",
    response_model=ContributionResponse,
    status_code=status.HTTP_201_CREATED
)
async def submit_contribution(
    team_id: uuid.UUID,
    document_uuid: uuid.UUID,
    contribution_data: ContributionCreate,
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow)
):
    """Отправка фрагмента в командный документ на проверку"""
    contribution = await workflow.submit(actor_id, document_uuid, contribution_data.content, team_id=team_id)
    return contribution_response(contribution)


@router.get(
    "/workspace/team/{team_id}/documents/{document_uuid}/contributions/pending",
    response_model=List[ContributionResponse]
)
async def list_pending_contributions(
    team_id: uuid.UUID,
    document_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow)
):
    """Ожидающие проверки вклады в порядке отправки"""
    contributions = await workflow.list_pending(actor_id, document_uuid, team_id=team_id)
    return [contribution_response(c) for c in contributions]


@router.post(
    "/workspace/team/{team_id}/contributions/{contribution_uuid}/approve",
    response_model=ContributionReviewResponse
)
async def approve_contribution(
    team_id: uuid.UUID,
    contribution_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Одобрение вклада со слиянием в документ"""
    contribution, document = await workflow.approve(actor_id, contribution_uuid, team_id=team_id)
    return ContributionReviewResponse(
        contribution=contribution_response(contribution),
        document=document_response(service, document)
    )


@router.post(
    "/workspace/team/{team_id}/contributions/{contribution_uuid}/reject",
    response_model=ContributionResponse
)
async def reject_contribution(
    team_id: uuid.UUID,
    contribution_uuid: uuid.UUID,
    reject_data: ContributionReject,
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow)
):
    """Отклонение вклада, документ не меняется"""
    contribution = await workflow.reject(actor_id, contribution_uuid, reject_data.reason, team_id=team_id)
    return contribution_response(contribution)


@router.get("/contributions/mine", response_model=List[ContributionResponse])
async def my_contributions(
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow)
):
    """Вклады текущего пользователя"""
    contributions = await workflow.list_for_contributor(actor_id)
    return [contribution_response(c) for c in contributions]


@router.get("/contributions/{contribution_uuid}", response_model=ContributionResponse)
async def get_contribution(
    contribution_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    workflow: ContributionWorkflow = Depends(get_contribution_workflow)
):
    contribution = await workflow.get_contribution(actor_id, contribution_uuid)
    return contribution_response(contribution)
