from datetime import datetime
from typing import Optional, List, Iterable, TYPE_CHECKING
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, and_, or_
import uuid

from docspace.db.models.workspace import (
    WorkspaceDocument as WorkspaceDocumentModel,
    WorkspaceDocumentVersion as WorkspaceDocumentVersionModel,
    WorkspaceContribution as WorkspaceContributionModel,
    ScopeMembership as ScopeMembershipModel
)
from docspace.domains.workspace.entities import ContributionStatus, Scope, ScopeKind

if TYPE_CHECKING:
    from docspace.domains.workspace.entities import WorkspaceDocument, DocumentVersion, Contribution
    from docspace.domains.workspace.templates import DocType


class WorkspaceDocumentRepository:
    """Репозиторий рабочих документов.

    Методы только отправляют изменения в сессию (flush); фиксацией транзакции
    управляет сервис.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, document: "WorkspaceDocument") -> "WorkspaceDocument":
        """Создание нового документа"""
        db_document = WorkspaceDocumentModel(
            uuid=document.uuid,
            title=document.title,
            description=document.description,
            content=document.content,
            doc_type=document.doc_type,
            version=document.version,
            scope_kind=document.scope.kind,
            scope_id=document.scope.owner_id,
            linked_document_id=document.linked_document_id,
            created_by=document.created_by,
            created_at=document.created_at,
            updated_at=document.updated_at,
            last_viewed_at=document.last_viewed_at
        )

        self.session.add(db_document)
        await self.session.flush()
        return self._to_domain(db_document)

    async def get_by_uuid(self, document_uuid: uuid.UUID) -> Optional["WorkspaceDocument"]:
        """Получение документа по UUID"""
        result = await self.session.execute(
            select(WorkspaceDocumentModel).where(WorkspaceDocumentModel.uuid == document_uuid)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None

    async def get_for_update(self, document_uuid: uuid.UUID) -> Optional["WorkspaceDocument"]:
        """Получение документа с блокировкой строки до конца транзакции"""
        result = await self.session.execute(
            select(WorkspaceDocumentModel)
            .where(WorkspaceDocumentModel.uuid == document_uuid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        db_document = result.scalar_one_or_none()
        return self._to_domain(db_document) if db_document else None

    async def update(self, document: "WorkspaceDocument") -> "WorkspaceDocument":
        """Обновление документа"""
        stmt = (
            update(WorkspaceDocumentModel)
            .where(WorkspaceDocumentModel.uuid == document.uuid)
            .values(
                title=document.title,
                description=document.description,
                content=document.content,
                doc_type=document.doc_type,
                version=document.version,
                updated_at=document.updated_at,
                last_viewed_at=document.last_viewed_at
            )
        )

        await self.session.execute(stmt)
        await self.session.flush()
        return document

    async def touch(self, document_uuids: Iterable[uuid.UUID], viewed_at: datetime) -> None:
        """Отметка просмотра для набора документов"""
        document_uuids = list(document_uuids)
        if not document_uuids:
            return
        await self.session.execute(
            update(WorkspaceDocumentModel)
            .where(WorkspaceDocumentModel.uuid.in_(document_uuids))
            .values(last_viewed_at=viewed_at)
        )

    async def delete(self, document_uuid: uuid.UUID) -> bool:
        """Удаление документа вместе с версиями и вкладами"""
        await self.session.execute(
            delete(WorkspaceDocumentVersionModel).where(WorkspaceDocumentVersionModel.document_id == document_uuid)
        )
        await self.session.execute(
            delete(WorkspaceContributionModel).where(WorkspaceContributionModel.document_id == document_uuid)
        )
        result = await self.session.execute(
            delete(WorkspaceDocumentModel).where(WorkspaceDocumentModel.uuid == document_uuid)
        )
        return result.rowcount > 0

    async def list_by_scope(
        self,
        scope: Scope,
        linked_document_id: Optional[uuid.UUID] = None,
        doc_type: Optional["DocType"] = None
    ) -> List["WorkspaceDocument"]:
        """Документы области в порядке создания"""
        query = select(WorkspaceDocumentModel).where(self._scope_condition(scope))

        if linked_document_id:
            query = query.where(WorkspaceDocumentModel.linked_document_id == linked_document_id)

        if doc_type:
            query = query.where(WorkspaceDocumentModel.doc_type == doc_type)

        result = await self.session.execute(
            query.order_by(WorkspaceDocumentModel.created_at, WorkspaceDocumentModel.uuid)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def search(
        self,
        scope: Scope,
        keyword: str,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List["WorkspaceDocument"]:
        """Поиск по заголовку и описанию без учета регистра"""
        pattern = f"%{keyword}%"
        query = select(WorkspaceDocumentModel).where(
            and_(
                self._scope_condition(scope),
                or_(
                    WorkspaceDocumentModel.title.ilike(pattern),
                    WorkspaceDocumentModel.description.ilike(pattern)
                )
            )
        )

        if linked_document_id:
            query = query.where(WorkspaceDocumentModel.linked_document_id == linked_document_id)

        result = await self.session.execute(
            query.order_by(WorkspaceDocumentModel.updated_at.desc(), WorkspaceDocumentModel.uuid)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def recent(
        self,
        scope: Scope,
        limit: int,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List["WorkspaceDocument"]:
        """Последние созданные документы области"""
        query = select(WorkspaceDocumentModel).where(self._scope_condition(scope))

        if linked_document_id:
            query = query.where(WorkspaceDocumentModel.linked_document_id == linked_document_id)

        result = await self.session.execute(
            query
            .order_by(WorkspaceDocumentModel.created_at.desc(), WorkspaceDocumentModel.uuid)
            .limit(limit)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    async def recently_viewed(
        self,
        scope: Scope,
        limit: int,
        linked_document_id: Optional[uuid.UUID] = None
    ) -> List["WorkspaceDocument"]:
        """Последние просмотренные документы области"""
        query = select(WorkspaceDocumentModel).where(
            and_(
                self._scope_condition(scope),
                WorkspaceDocumentModel.last_viewed_at.is_not(None)
            )
        )

        if linked_document_id:
            query = query.where(WorkspaceDocumentModel.linked_document_id == linked_document_id)

        result = await self.session.execute(
            query
            .order_by(WorkspaceDocumentModel.last_viewed_at.desc(), WorkspaceDocumentModel.uuid)
            .limit(limit)
        )
        return [self._to_domain(doc) for doc in result.scalars().all()]

    @staticmethod
    def _scope_condition(scope: Scope):
        return and_(
            WorkspaceDocumentModel.scope_kind == scope.kind,
            WorkspaceDocumentModel.scope_id == scope.owner_id
        )

    def _to_domain(self, db_document: WorkspaceDocumentModel) -> "WorkspaceDocument":
        """Преобразование модели БД в доменную сущность"""
        from docspace.domains.workspace.entities import WorkspaceDocument

        return WorkspaceDocument(
            uuid=db_document.uuid,
            title=db_document.title,
            scope=Scope(ScopeKind(db_document.scope_kind), db_document.scope_id),
            description=db_document.description or "",
            content=db_document.content or b"",
            doc_type=db_document.doc_type,
            linked_document_id=db_document.linked_document_id,
            version=db_document.version or 0,
            created_by=db_document.created_by,
            created_at=db_document.created_at,
            updated_at=db_document.updated_at,
            last_viewed_at=db_document.last_viewed_at
        )


class DocumentVersionRepository:
    """Репозиторий версий рабочих документов"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, version: "DocumentVersion") -> "DocumentVersion":
        """Сохранение снимка версии"""
        db_version = WorkspaceDocumentVersionModel(
            uuid=version.uuid,
            document_id=version.document_id,
            content=version.content,
            version_number=version.version_number,
            created_by=version.created_by,
            created_at=version.created_at
        )

        self.session.add(db_version)
        await self.session.flush()
        return self._to_domain(db_version)

    async def get_by_document(self, document_id: uuid.UUID) -> List["DocumentVersion"]:
        """Версии документа по возрастанию номера"""
        result = await self.session.execute(
            select(WorkspaceDocumentVersionModel)
            .where(WorkspaceDocumentVersionModel.document_id == document_id)
            .order_by(WorkspaceDocumentVersionModel.version_number)
        )
        return [self._to_domain(version) for version in result.scalars().all()]

    def _to_domain(self, db_version: WorkspaceDocumentVersionModel) -> "DocumentVersion":
        """Преобразование модели БД в доменную сущность"""
        from docspace.domains.workspace.entities import DocumentVersion

        return DocumentVersion(
            uuid=db_version.uuid,
            document_id=db_version.document_id,
            content=db_version.content,
            version_number=db_version.version_number,
            created_by=db_version.created_by,
            created_at=db_version.created_at
        )


class ContributionRepository:
    """Репозиторий вкладов в командные документы"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, contribution: "Contribution") -> "Contribution":
        """Сохранение нового вклада"""
        db_contribution = WorkspaceContributionModel(
            uuid=contribution.uuid,
            document_id=contribution.document_id,
            contributor_id=contribution.contributor_id,
            content=contribution.content,
            submitted_at=contribution.submitted_at,
            status=contribution.status
        )

        self.session.add(db_contribution)
        await self.session.flush()
        return self._to_domain(db_contribution)

    async def get_by_uuid(self, contribution_uuid: uuid.UUID) -> Optional["Contribution"]:
        """Получение вклада по UUID"""
        result = await self.session.execute(
            select(WorkspaceContributionModel).where(WorkspaceContributionModel.uuid == contribution_uuid)
        )
        db_contribution = result.scalar_one_or_none()
        return self._to_domain(db_contribution) if db_contribution else None

    async def get_for_update(self, contribution_uuid: uuid.UUID) -> Optional["Contribution"]:
        """Получение вклада со свежим состоянием и блокировкой строки"""
        result = await self.session.execute(
            select(WorkspaceContributionModel)
            .where(WorkspaceContributionModel.uuid == contribution_uuid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        db_contribution = result.scalar_one_or_none()
        return self._to_domain(db_contribution) if db_contribution else None

    async def complete_review(self, contribution: "Contribution") -> bool:
        """Сохранение результата проверки, только если вклад еще ожидает ее.

        Возвращает False, если вклад уже был проверен в другой транзакции.
        """
        result = await self.session.execute(
            update(WorkspaceContributionModel)
            .where(
                and_(
                    WorkspaceContributionModel.uuid == contribution.uuid,
                    WorkspaceContributionModel.status == ContributionStatus.PENDING
                )
            )
            .values(
                status=contribution.status,
                reviewer_id=contribution.reviewer_id,
                reviewed_at=contribution.reviewed_at,
                rejection_reason=contribution.rejection_reason
            )
        )
        await self.session.flush()
        return result.rowcount > 0

    async def list_pending(self, document_id: uuid.UUID) -> List["Contribution"]:
        """Ожидающие проверки вклады в порядке отправки"""
        result = await self.session.execute(
            select(WorkspaceContributionModel)
            .where(
                and_(
                    WorkspaceContributionModel.document_id == document_id,
                    WorkspaceContributionModel.status == ContributionStatus.PENDING
                )
            )
            .order_by(WorkspaceContributionModel.submitted_at, WorkspaceContributionModel.uuid)
        )
        return [self._to_domain(c) for c in result.scalars().all()]

    async def list_by_contributor(self, contributor_id: uuid.UUID) -> List["Contribution"]:
        """Все вклады пользователя, новые первыми"""
        result = await self.session.execute(
            select(WorkspaceContributionModel)
            .where(WorkspaceContributionModel.contributor_id == contributor_id)
            .order_by(WorkspaceContributionModel.submitted_at.desc(), WorkspaceContributionModel.uuid)
        )
        return [self._to_domain(c) for c in result.scalars().all()]

    def _to_domain(self, db_contribution: WorkspaceContributionModel) -> "Contribution":
        """Преобразование модели БД в доменную сущность"""
        from docspace.domains.workspace.entities import Contribution

        return Contribution(
            uuid=db_contribution.uuid,
            document_id=db_contribution.document_id,
            contributor_id=db_contribution.contributor_id,
            content=db_contribution.content,
            status=ContributionStatus(db_contribution.status),
            submitted_at=db_contribution.submitted_at,
            reviewer_id=db_contribution.reviewer_id,
            reviewed_at=db_contribution.reviewed_at,
            rejection_reason=db_contribution.rejection_reason
        )


class ScopeMembershipRepository:
    """Членство пользователей в проектах и командах"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, scope_kind: ScopeKind, scope_id: uuid.UUID, user_id: uuid.UUID, role: str) -> None:
        """Добавление участника области с ролью"""
        self.session.add(ScopeMembershipModel(
            scope_kind=scope_kind,
            scope_id=scope_id,
            user_id=user_id,
            role=role
        ))
        await self.session.flush()

    async def get_role(self, scope_kind: ScopeKind, scope_id: uuid.UUID, user_id: uuid.UUID) -> Optional[str]:
        """Роль пользователя в области или None"""
        result = await self.session.execute(
            select(ScopeMembershipModel.role).where(
                and_(
                    ScopeMembershipModel.scope_kind == scope_kind,
                    ScopeMembershipModel.scope_id == scope_id,
                    ScopeMembershipModel.user_id == user_id
                )
            )
        )
        return result.scalar_one_or_none()
