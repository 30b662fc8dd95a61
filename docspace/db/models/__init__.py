from docspace.db.models.workspace import (
    WorkspaceDocument, WorkspaceDocumentVersion, WorkspaceContribution, ScopeMembership
)

__all__ = [
    "WorkspaceDocument",
    "WorkspaceDocumentVersion",
    "WorkspaceContribution",
    "ScopeMembership"
]
