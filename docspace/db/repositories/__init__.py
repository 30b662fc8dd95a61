from docspace.db.repositories.workspace_repository import (
    WorkspaceDocumentRepository, DocumentVersionRepository, ContributionRepository, ScopeMembershipRepository
)

__all__ = [
    "WorkspaceDocumentRepository",
    "DocumentVersionRepository",
    "ContributionRepository",
    "ScopeMembershipRepository"
]
