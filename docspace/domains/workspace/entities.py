import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from docspace.core.exceptions import InvalidStateError
from docspace.domains.workspace.templates import DocType

ENCODING = "utf-8"


class ScopeKind(str, Enum):
    """Владелец рабочего документа"""
    USER = "user"
    PROJECT = "project"
    TEAM = "team"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    owner_id: uuid.UUID

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.owner_id}"


class ContributionStatus(str, Enum):
    """Статусы вклада в командный документ"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class WorkspaceDocument:
    """Рабочий документ области (пользователь, проект или команда)"""

    def __init__(
        self,
        uuid: uuid.UUID,
        title: str,
        scope: Scope,
        description: str = "",
        content: bytes = b"",
        doc_type: Optional[DocType] = None,
        linked_document_id: Optional[uuid.UUID] = None,
        version: int = 0,
        created_by: Optional[uuid.UUID] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        last_viewed_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.title = title
        self.scope = scope
        self.description = description
        self.content = content
        self.doc_type = doc_type
        self.linked_document_id = linked_document_id
        self.version = version
        self.created_by = created_by
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()
        self.last_viewed_at = last_viewed_at

    @property
    def text(self) -> str:
        """Содержимое документа как строка"""
        return self.content.decode(ENCODING) if self.content else ""

    def set_text(self, text: str) -> None:
        self.content = text.encode(ENCODING)

    @property
    def is_typed(self) -> bool:
        return self.doc_type is not None

    def touch(self) -> None:
        """Отметка просмотра документа"""
        self.last_viewed_at = datetime.utcnow()

    def record_change(self, author_id: uuid.UUID) -> "DocumentVersion":
        """Фиксация новой версии после изменения содержимого"""
        self.version += 1
        return DocumentVersion.create_version(
            document_id=self.uuid,
            content=self.content,
            version_number=self.version,
            created_by=author_id
        )

    @classmethod
    def create_document(
        cls,
        title: str,
        scope: Scope,
        created_by: uuid.UUID,
        description: str = "",
        linked_document_id: Optional[uuid.UUID] = None
    ) -> "WorkspaceDocument":
        """Создание пустого (еще не типизированного) документа"""
        return cls(
            uuid=uuid.uuid4(),
            title=title,
            scope=scope,
            description=description,
            linked_document_id=linked_document_id,
            created_by=created_by
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, WorkspaceDocument):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"WorkspaceDocument(uuid={self.uuid}, title={self.title}, doc_type={self.doc_type}, scope={self.scope})"


class DocumentVersion:
    """Снимок содержимого документа после изменения"""

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        content: bytes,
        version_number: int,
        created_by: uuid.UUID,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.content = content
        self.version_number = version_number
        self.created_by = created_by
        self.created_at = created_at or datetime.utcnow()

    @property
    def text(self) -> str:
        return self.content.decode(ENCODING) if self.content else ""

    @classmethod
    def create_version(
        cls,
        document_id: uuid.UUID,
        content: bytes,
        version_number: int,
        created_by: uuid.UUID
    ) -> "DocumentVersion":
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            content=content,
            version_number=version_number,
            created_by=created_by
        )

    def __repr__(self) -> str:
        return f"DocumentVersion(uuid={self.uuid}, document_id={self.document_id}, version={self.version_number})"


class Contribution:
    """Предложенный участником команды фрагмент, ожидающий проверки.

    Переходы только PENDING -> APPROVED и PENDING -> REJECTED, оба конечные.
    """

    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        contributor_id: uuid.UUID,
        content: bytes,
        status: ContributionStatus = ContributionStatus.PENDING,
        submitted_at: Optional[datetime] = None,
        reviewer_id: Optional[uuid.UUID] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.contributor_id = contributor_id
        self.content = content
        self.status = status
        self.submitted_at = submitted_at or datetime.utcnow()
        self.reviewer_id = reviewer_id
        self.reviewed_at = reviewed_at
        self.rejection_reason = rejection_reason

    @property
    def text(self) -> str:
        return self.content.decode(ENCODING) if self.content else ""

    @property
    def is_pending(self) -> bool:
        return self.status == ContributionStatus.PENDING

    def _ensure_pending(self) -> None:
        if not self.is_pending:
            raise InvalidStateError(
                f"Contribution {self.uuid} is already {self.status.value.lower()}"
            )

    def approve(self, reviewer_id: uuid.UUID) -> None:
        self._ensure_pending()
        self.status = ContributionStatus.APPROVED
        self.reviewer_id = reviewer_id
        self.reviewed_at = datetime.utcnow()

    def reject(self, reviewer_id: uuid.UUID, reason: Optional[str]) -> None:
        self._ensure_pending()
        self.status = ContributionStatus.REJECTED
        self.reviewer_id = reviewer_id
        self.reviewed_at = datetime.utcnow()
        self.rejection_reason = reason

    @classmethod
    def submit(cls, document_id: uuid.UUID, contributor_id: uuid.UUID, fragment: str) -> "Contribution":
        """Создание нового вклада в статусе PENDING"""
        return cls(
            uuid=uuid.uuid4(),
            document_id=document_id,
            contributor_id=contributor_id,
            content=fragment.encode(ENCODING)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Contribution):
            return False
        return self.uuid == other.uuid

    def __repr__(self) -> str:
        return f"Contribution(uuid={self.uuid}, document_id={self.document_id}, status={self.status.value})"
