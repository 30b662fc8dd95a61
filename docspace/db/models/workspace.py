from sqlalchemy import Column, String, Text, Integer, LargeBinary, DateTime, ForeignKey, Uuid, Enum, UniqueConstraint
from sqlalchemy.orm import relationship

from docspace.db.base import BaseModel
from docspace.domains.workspace.entities import ContributionStatus, ScopeKind
from docspace.domains.workspace.templates import DocType


class WorkspaceDocument(BaseModel):
    __tablename__ = "workspace_documents"
    
    title = Column(String(255), nullable=False)
    description = Column(Text, default="")
    content = Column(LargeBinary, default=b"")
    doc_type = Column(Enum(DocType, native_enum=False, length=32), nullable=True)
    version = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)
    created_by = Column(Uuid(as_uuid=True), nullable=True)

    # Ровно одна область-владелец
    scope_kind = Column(Enum(ScopeKind, native_enum=False, length=16), nullable=False, index=True)
    scope_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    # Загруженный документ проекта, к которому привязан рабочий документ
    linked_document_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    
    # Relationships
    versions = relationship("WorkspaceDocumentVersion", back_populates="document", cascade="all, delete-orphan")
    contributions = relationship("WorkspaceContribution", back_populates="document", cascade="all, delete-orphan")


class WorkspaceDocumentVersion(BaseModel):
    __tablename__ = "workspace_document_versions"
    
    document_id = Column(Uuid(as_uuid=True), ForeignKey("workspace_documents.uuid", ondelete="CASCADE"), nullable=False)
    content = Column(LargeBinary, nullable=False)
    version_number = Column(Integer, nullable=False)
    created_by = Column(Uuid(as_uuid=True), nullable=False)

    __table_args__ = (UniqueConstraint("document_id", "version_number"),)
    
    # Relationships
    document = relationship("WorkspaceDocument", back_populates="versions")


class WorkspaceContribution(BaseModel):
    __tablename__ = "workspace_contributions"
    
    document_id = Column(Uuid(as_uuid=True), ForeignKey("workspace_documents.uuid", ondelete="CASCADE"), nullable=False, index=True)
    contributor_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    content = Column(LargeBinary, nullable=False)
    submitted_at = Column(DateTime, nullable=False)
    status = Column(Enum(ContributionStatus, native_enum=False, length=16), nullable=False, default=ContributionStatus.PENDING)
    reviewer_id = Column(Uuid(as_uuid=True), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    
    # Relationships
    document = relationship("WorkspaceDocument", back_populates="contributions")


class ScopeMembership(BaseModel):
    __tablename__ = "scope_memberships"

    scope_kind = Column(Enum(ScopeKind, native_enum=False, length=16), nullable=False)
    scope_id = Column(Uuid(as_uuid=True), nullable=False)
    user_id = Column(Uuid(as_uuid=True), nullable=False)
    role = Column(String(16), nullable=False)

    __table_args__ = (UniqueConstraint("scope_kind", "scope_id", "user_id"),)
