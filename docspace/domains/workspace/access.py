"""Проверка прав в области документа.

Роль пользователя в области (владелец, администратор, участник) вычисляет
внешняя платформа; здесь она превращается в набор возможностей и
сверяется с таблицей политик для каждого действия.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from docspace.core.exceptions import UnauthorizedError
from docspace.db.repositories.workspace_repository import ScopeMembershipRepository
from docspace.domains.workspace.entities import Scope, ScopeKind

logger = logging.getLogger(__name__)


class ScopeRole(str, Enum):
    """Роль пользователя в области"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    NONE = "none"


class Capability(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


@dataclass(frozen=True)
class Capabilities:
    owner: bool = False
    admin: bool = False
    member: bool = False

    def allows(self, capability: Capability) -> bool:
        return getattr(self, capability.value)


def capabilities_of(role: ScopeRole) -> Capabilities:
    """Возможности по роли: владелец > администратор > участник"""
    if role == ScopeRole.OWNER:
        return Capabilities(owner=True, admin=True, member=True)
    if role == ScopeRole.ADMIN:
        return Capabilities(admin=True, member=True)
    if role == ScopeRole.MEMBER:
        return Capabilities(member=True)
    return Capabilities()


class Action(str, Enum):
    CREATE = "create"
    TEMPLATE = "template"
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    EXPORT = "export"
    SUBMIT = "submit"
    REVIEW = "review"


# Требуемая возможность для действия в каждой области
POLICY: Dict[Action, Dict[ScopeKind, Capability]] = {
    Action.CREATE: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.MEMBER,
        ScopeKind.TEAM: Capability.ADMIN,
    },
    Action.TEMPLATE: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.MEMBER,
        ScopeKind.TEAM: Capability.ADMIN,
    },
    Action.VIEW: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.MEMBER,
        ScopeKind.TEAM: Capability.MEMBER,
    },
    Action.EDIT: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.MEMBER,
        ScopeKind.TEAM: Capability.ADMIN,
    },
    Action.DELETE: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.ADMIN,
        ScopeKind.TEAM: Capability.ADMIN,
    },
    Action.EXPORT: {
        ScopeKind.USER: Capability.OWNER,
        ScopeKind.PROJECT: Capability.MEMBER,
        ScopeKind.TEAM: Capability.MEMBER,
    },
    # Вклады существуют только для командных документов
    Action.SUBMIT: {
        ScopeKind.TEAM: Capability.MEMBER,
    },
    Action.REVIEW: {
        ScopeKind.TEAM: Capability.ADMIN,
    },
}


class AccessResolver(Protocol):
    async def resolve_role(self, actor_id: uuid.UUID, scope: Scope) -> ScopeRole:
        ...


class MembershipAccessResolver:
    """Роль по таблице членства в проектах и командах"""

    def __init__(self, session: AsyncSession):
        self.membership_repository = ScopeMembershipRepository(session)

    async def resolve_role(self, actor_id: uuid.UUID, scope: Scope) -> ScopeRole:
        if scope.kind == ScopeKind.USER:
            return ScopeRole.OWNER if actor_id == scope.owner_id else ScopeRole.NONE

        role = await self.membership_repository.get_role(scope.kind, scope.owner_id, actor_id)
        return ScopeRole(role) if role else ScopeRole.NONE


async def authorize(
    resolver: AccessResolver,
    actor_id: uuid.UUID,
    scope: Scope,
    action: Action
) -> Capabilities:
    """Проверка, что пользователь может выполнить действие в области"""
    required = POLICY[action].get(scope.kind)
    if required is None:
        raise UnauthorizedError(f"Action '{action.value}' is not available for {scope.kind.value} documents")

    role = await resolver.resolve_role(actor_id, scope)
    capabilities = capabilities_of(role)
    if not capabilities.allows(required):
        logger.warning(f"User {actor_id} is not authorized to {action.value} in {scope}")
        raise UnauthorizedError(f"Only {scope.kind.value} {required.value}s can {action.value} workspace documents")

    return capabilities
