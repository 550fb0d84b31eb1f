"""Shared test fixtures for blocksync."""

import pytest

from blocksync.config.models import BlocksyncConfig, OutputConfig
from blocksync.registry import LinkRegistry, MediaRegistry, RegistryDatabase

from factories import DOC_B, DOC_C, text


@pytest.fixture
def sample_config():
    return BlocksyncConfig()


@pytest.fixture
def registry_db(tmp_path):
    db = RegistryDatabase(str(tmp_path / "registry.db"))
    yield db
    db.close()


@pytest.fixture
def links(registry_db):
    return LinkRegistry(registry_db)


@pytest.fixture
def media(registry_db):
    return MediaRegistry(registry_db)


@pytest.fixture
def output_config(tmp_path):
    return OutputConfig(base_dir=str(tmp_path / "site"), base_url="https://example.test")


@pytest.fixture
def sample_export():
    """Exported document JSON: a page with a heading, a list, a link and a child page."""
    return {
        "object": "page",
        "id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa",
        "properties": {
            "title": {"type": "title", "title": [text("Handbook")]},
        },
        "blocks": [
            {"id": "h1", "type": "heading_1", "heading_1": {"rich_text": [text("Welcome")]}},
            {
                "id": "li1",
                "type": "bulleted_list_item",
                "bulleted_list_item": {"rich_text": [text("First")]},
            },
            {
                "id": "li2",
                "type": "bulleted_list_item",
                "bulleted_list_item": {"rich_text": [text("Second")]},
                "has_children": True,
                "children": [
                    {
                        "id": "li2a",
                        "type": "bulleted_list_item",
                        "bulleted_list_item": {"rich_text": [text("Nested")]},
                    }
                ],
            },
            {
                "id": "p1",
                "type": "paragraph",
                "paragraph": {"rich_text": [text("See the guide", link="/" + DOC_B)]},
            },
            {"id": DOC_C, "type": "child_page", "child_page": {"title": "Appendix"}},
        ],
    }
