from fastapi import APIRouter, Depends, Query, Response, status
from typing import Optional, List
from urllib.parse import quote
import uuid

from docspace.api.http.dependencies import get_workspace_service
from docspace.core.auth import get_current_actor
from docspace.domains.workspace.entities import Scope, ScopeKind, WorkspaceDocument
from docspace.domains.workspace.schemas import (
    WorkspaceDocumentCreate, TemplateRequest, ContentUpdate,
    WorkspaceDocumentResponse, WorkspaceDocumentListResponse, DocumentVersionResponse
)
from docspace.domains.workspace.services import WorkspaceService
from docspace.domains.workspace.templates import DocType

router = APIRouter(prefix="/workspace/{scope_kind}/{scope_id}", tags=["workspace"])


def document_response(service: WorkspaceService, document: WorkspaceDocument) -> WorkspaceDocumentResponse:
    return WorkspaceDocumentResponse(
        uuid=document.uuid,
        title=document.title,
        description=document.description,
        doc_type=document.doc_type,
        content=document.text,
        anchor_content=service.anchor_content(document),
        scope_kind=document.scope.kind,
        scope_id=document.scope.owner_id,
        linked_document_id=document.linked_document_id,
        version=document.version,
        created_at=document.created_at,
        updated_at=document.updated_at,
        last_viewed_at=document.last_viewed_at
    )


def list_response(service: WorkspaceService, documents: List[WorkspaceDocument]) -> WorkspaceDocumentListResponse:
    return WorkspaceDocumentListResponse(
        documents=[document_response(service, doc) for doc in documents],
        total=len(documents)
    )


def attachment(filename: str) -> dict:
    # Заголовки HTTP только latin-1, поэтому имя передается в RFC 5987
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


@router.post("/documents", response_model=WorkspaceDocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_data: WorkspaceDocumentCreate,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Создание пустого рабочего документа"""
    document = await service.create_document(actor_id, Scope(scope_kind, scope_id), document_data)
    return document_response(service, document)


@router.get("/documents", response_model=WorkspaceDocumentListResponse)
async def list_documents(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Все документы области"""
    documents = await service.list_documents(actor_id, Scope(scope_kind, scope_id), linked_document_id)
    return list_response(service, documents)


@router.get("/documents/by-type/{doc_type}", response_model=WorkspaceDocumentListResponse)
async def list_documents_by_type(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    doc_type: DocType,
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Документы выбранного типа"""
    documents = await service.list_by_type(actor_id, Scope(scope_kind, scope_id), doc_type, linked_document_id)
    return list_response(service, documents)


@router.get("/documents/search", response_model=WorkspaceDocumentListResponse)
async def search_documents(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    q: str = Query(..., min_length=1, max_length=255),
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Поиск по заголовку и описанию"""
    documents = await service.search(actor_id, Scope(scope_kind, scope_id), q, linked_document_id)
    return list_response(service, documents)


@router.get("/documents/recent", response_model=WorkspaceDocumentListResponse)
async def recent_documents(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    documents = await service.recent(actor_id, Scope(scope_kind, scope_id), linked_document_id)
    return list_response(service, documents)


@router.get("/documents/recently-viewed", response_model=WorkspaceDocumentListResponse)
async def recently_viewed_documents(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    documents = await service.recently_viewed(actor_id, Scope(scope_kind, scope_id), linked_document_id)
    return list_response(service, documents)


@router.get("/export")
async def export_documents(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    linked_document_id: Optional[uuid.UUID] = Query(None),
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """ZIP архив всех документов области; 204, если документов нет"""
    archive = await service.export_scope(actor_id, Scope(scope_kind, scope_id), linked_document_id)
    if archive is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return Response(
        content=archive.data,
        media_type=archive.mime_type,
        headers=attachment(archive.filename)
    )


@router.post("/documents/{document_uuid}/template", response_model=WorkspaceDocumentResponse)
async def request_template(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    template_request: TemplateRequest,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Каркас выбранного типа для документа"""
    document = await service.request_template(
        actor_id,
        Scope(scope_kind, scope_id),
        document_uuid,
        template_request.doc_type,
        template_request.content
    )
    return document_response(service, document)


@router.get("/documents/{document_uuid}", response_model=WorkspaceDocumentResponse)
async def get_document(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Получение документа по UUID"""
    document = await service.view_document(actor_id, Scope(scope_kind, scope_id), document_uuid)
    return document_response(service, document)


@router.put("/documents/{document_uuid}/content", response_model=WorkspaceDocumentResponse)
async def reset_content(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    update_data: ContentUpdate,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Содержимое в свежем каркасе: все вне якоря сбрасывается"""
    document = await service.reset_content(actor_id, Scope(scope_kind, scope_id), document_uuid, update_data.content)
    return document_response(service, document)


@router.patch("/documents/{document_uuid}/content", response_model=WorkspaceDocumentResponse)
async def update_content(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    update_data: ContentUpdate,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Замена области якоря, остальной каркас сохраняется"""
    document = await service.update_content(actor_id, Scope(scope_kind, scope_id), document_uuid, update_data.content)
    return document_response(service, document)


@router.delete("/documents/{document_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Удаление документа"""
    await service.delete_document(actor_id, Scope(scope_kind, scope_id), document_uuid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/documents/{document_uuid}/download")
async def download_document(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """Скачивание документа файлом с расширением его типа"""
    downloaded = await service.download(actor_id, Scope(scope_kind, scope_id), document_uuid)
    return Response(
        content=downloaded.data,
        media_type=downloaded.mime_type,
        headers=attachment(downloaded.filename)
    )


@router.get("/documents/{document_uuid}/versions", response_model=List[DocumentVersionResponse])
async def get_document_versions(
    scope_kind: ScopeKind,
    scope_id: uuid.UUID,
    document_uuid: uuid.UUID,
    actor_id: uuid.UUID = Depends(get_current_actor),
    service: WorkspaceService = Depends(get_workspace_service)
):
    """История версий документа"""
    versions = await service.list_versions(actor_id, Scope(scope_kind, scope_id), document_uuid)
    return [
        DocumentVersionResponse(
            uuid=version.uuid,
            document_id=version.document_id,
            version_number=version.version_number,
            content=version.text,
            created_by=version.created_by,
            created_at=version.created_at
        )
        for version in versions
    ]
