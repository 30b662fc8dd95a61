from docspace.domains.workspace.templates import DocType, AnchorStrategy, Template, TemplateRegistry, registry
from docspace.domains.workspace.entities import (
    ScopeKind, Scope, ContributionStatus, WorkspaceDocument, DocumentVersion, Contribution
)
from docspace.domains.workspace.injector import ContentInjector
from docspace.domains.workspace.merger import ContentMerger
from docspace.domains.workspace.archive import ArchiveExporter, WorkspaceArchive, DownloadedFile

__all__ = [
    "DocType", "AnchorStrategy", "Template", "TemplateRegistry", "registry",
    "ScopeKind", "Scope", "ContributionStatus", "WorkspaceDocument", "DocumentVersion", "Contribution",
    "ContentInjector", "ContentMerger",
    "ArchiveExporter", "WorkspaceArchive", "DownloadedFile"
]
