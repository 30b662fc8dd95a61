import logging

import pytest

from docspace.domains.workspace.templates import AnchorStrategy, DocType, TemplateRegistry


TEMPLATE_TYPES = [
    DocType.HTML, DocType.CSS, DocType.JS, DocType.JAVA, DocType.PYTHON, DocType.C_SHARP,
    DocType.C_PLUS_PLUS, DocType.RUBY, DocType.PHP, DocType.SWIFT, DocType.GO, DocType.R,
    DocType.KOTLIN, DocType.SCALA, DocType.TYPESCRIPT, DocType.SQL, DocType.NO_SQL,
    DocType.MARKDOWN, DocType.TEXT,
]


@pytest.fixture
def registry():
    return TemplateRegistry()


def test_every_template_type_is_supported(registry):
    assert set(registry.supported_types()) == set(TEMPLATE_TYPES)


@pytest.mark.parametrize("doc_type", TEMPLATE_TYPES)
def test_skeleton_contains_its_anchor(registry, doc_type):
    skeleton = registry.skeleton_for(doc_type)
    parts = registry.anchor_pattern_for(doc_type).split(skeleton)

    assert parts is not None
    prefix, body, suffix = parts
    assert prefix + body + suffix == skeleton
    assert registry.template_for(doc_type).sample in body


def test_skeleton_is_deterministic(registry):
    assert registry.skeleton_for(DocType.JAVA) == registry.skeleton_for(DocType.JAVA)


def test_html_skeleton_has_body_region(registry):
    skeleton = registry.skeleton_for(DocType.HTML)

    assert skeleton.startswith("<!DOCTYPE html>")
    assert skeleton.index("<body>") < skeleton.index("</body>")
    assert registry.anchor_pattern_for(DocType.HTML).strategy is AnchorStrategy.WRAP


def test_strategies_by_type(registry):
    assert registry.template_for(DocType.RUBY).strategy is AnchorStrategy.HEADER
    assert registry.template_for(DocType.MARKDOWN).strategy is AnchorStrategy.HEADER
    assert registry.template_for(DocType.TEXT).strategy is AnchorStrategy.FLAT
    assert registry.skeleton_for(DocType.TEXT) == "Hello, World!"


@pytest.mark.parametrize("doc_type", ["COBOL", DocType.PDF, None])
def test_unknown_type_yields_empty_skeleton_with_warning(registry, caplog, doc_type):
    with caplog.at_level(logging.WARNING, logger="docspace.domains.workspace.templates"):
        assert registry.skeleton_for(doc_type) == ""

    assert "Unknown DocType" in caplog.text
    assert registry.anchor_pattern_for(doc_type) is None


def test_string_types_are_accepted(registry):
    assert registry.skeleton_for("PYTHON") == registry.skeleton_for(DocType.PYTHON)


def test_extension_and_mime_type(registry):
    assert registry.extension_for(DocType.KOTLIN) == ".kt"
    assert registry.mime_type_for(DocType.HTML) == "text/html"
    assert registry.extension_for(DocType.NO_SQL) == ".json"


def test_untyped_document_falls_back_to_text(registry):
    assert registry.extension_for(None) == ".txt"
    assert registry.mime_type_for(None) == "text/plain"
