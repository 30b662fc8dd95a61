from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
import uuid
from datetime import datetime

from docspace.domains.workspace.entities import ContributionStatus, ScopeKind
from docspace.domains.workspace.templates import DocType

MAX_CONTENT_LENGTH = 1000000  # 1MB max content


class WorkspaceDocumentCreate(BaseModel):
    """Схема для создания рабочего документа"""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=10000)
    linked_document_id: Optional[uuid.UUID] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()


class TemplateRequest(BaseModel):
    """Схема для запроса шаблона по типу документа"""
    doc_type: DocType
    # Без содержимого в каркас попадает пример тела шаблона
    content: Optional[str] = Field(None, max_length=MAX_CONTENT_LENGTH)


class ContentUpdate(BaseModel):
    """Схема для изменения содержимого документа"""
    content: str = Field(..., max_length=MAX_CONTENT_LENGTH)


class WorkspaceDocumentResponse(BaseModel):
    """Схема для ответа с данными рабочего документа"""
    uuid: uuid.UUID
    title: str
    description: str
    doc_type: Optional[DocType]
    content: str
    anchor_content: Optional[str] = None
    scope_kind: ScopeKind
    scope_id: uuid.UUID
    linked_document_id: Optional[uuid.UUID] = None
    version: int
    created_at: datetime
    updated_at: datetime
    last_viewed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WorkspaceDocumentListResponse(BaseModel):
    """Схема для списка рабочих документов"""
    documents: List[WorkspaceDocumentResponse]
    total: int


class DocumentVersionResponse(BaseModel):
    """Схема для ответа с версией документа"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    version_number: int
    content: str
    created_by: uuid.UUID
    created_at: datetime


class ContributionCreate(BaseModel):
    """Схема для отправки вклада в командный документ"""
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)


class ContributionReject(BaseModel):
    """Схема для отклонения вклада"""
    reason: Optional[str] = Field(None, max_length=2000)


class ContributionResponse(BaseModel):
    """Схема для ответа с данными вклада"""
    uuid: uuid.UUID
    document_id: uuid.UUID
    contributor_id: uuid.UUID
    content: str
    status: ContributionStatus
    submitted_at: datetime
    reviewer_id: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class ContributionReviewResponse(BaseModel):
    """Схема для ответа на одобрение вклада"""
    contribution: ContributionResponse
    document: WorkspaceDocumentResponse
