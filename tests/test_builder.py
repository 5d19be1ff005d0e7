"""Tests for catalog building from awesome-list markdown."""

from datetime import datetime

import pytest

from catalog import (
    CURRENT_VERSION,
    MarkdownParseError,
    build_stats,
    clean_description,
    flatten_tree,
    parse_awesome_list,
)


class TestParseAwesomeList:
    """Tests for the full markdown to catalog pipeline."""

    def test_sample_tree(self, sample_catalog):
        assert len(sample_catalog.tree) == 2

        dev_tools = sample_catalog.tree[0]
        assert dev_tools.title == "Development Tools"
        assert dev_tools.slug == "development-tools"
        assert dev_tools.items == []
        assert [c.title for c in dev_tools.children] == ["Code Editors", "Version Control"]
        assert dev_tools.children[0].slug == "development-tools-code-editors"
        assert dev_tools.children[1].slug == "development-tools-version-control"

        learning = sample_catalog.tree[1]
        assert learning.slug == "learning-resources"
        assert learning.children[0].slug == "learning-resources-tutorials"

    def test_sample_items(self, sample_catalog):
        editors = sample_catalog.tree[0].children[0]
        assert len(editors.items) == 2
        vscode = editors.items[0]
        assert vscode.title == "VSCode"
        assert vscode.url == "https://code.visualstudio.com/"
        assert vscode.description == "Free and open source code editor"
        assert vscode.category == "Development Tools"
        assert vscode.subcategory == "Code Editors"

    def test_sample_list_and_meta(self, sample_catalog):
        assert [item.title for item in sample_catalog.list] == [
            "VSCode", "Sublime Text", "Git", "GitHub Desktop", "FreeCodeCamp", "MDN Web Docs",
        ]
        assert sample_catalog.meta.total_items == 6
        assert sample_catalog.meta.version == CURRENT_VERSION == 2

    def test_updated_at_is_iso_utc(self, sample_catalog):
        updated_at = sample_catalog.meta.updated_at
        assert updated_at.endswith("Z")
        parsed = datetime.fromisoformat(updated_at.replace("Z", "+00:00"))
        assert parsed.utcoffset().total_seconds() == 0

    def test_simple_category_with_subcategory(self):
        catalog = parse_awesome_list(
            "## Tools\n"
            "### Editors\n"
            "- [VSCode](https://code.visualstudio.com/) - Free code editor\n"
        )
        [tools] = catalog.tree
        assert tools.slug == "tools"
        assert tools.children[0].slug == "tools-editors"
        [item] = catalog.list
        assert item.to_dict() == {
            "title": "VSCode",
            "url": "https://code.visualstudio.com/",
            "description": "Free code editor",
            "category": "Tools",
            "subcategory": "Editors",
        }

    def test_list_before_first_category_is_dropped(self):
        catalog = parse_awesome_list(
            "- [Orphan](https://o.example)\n"
            "\n"
            "## Tools\n"
            "- [Git](https://git-scm.com/)\n"
        )
        assert [item.title for item in catalog.list] == ["Git"]
        [git] = catalog.list
        assert git.description is None
        assert git.subcategory is None

    def test_subcategory_before_category_is_ignored(self):
        catalog = parse_awesome_list(
            "### Lost\n"
            "- [X](https://x.example)\n"
            "## Tools\n"
        )
        [tools] = catalog.tree
        assert tools.children == []
        assert catalog.list == []
        assert catalog.meta.total_items == 0

    def test_empty_heading_keeps_current_category(self):
        catalog = parse_awesome_list(
            "## Tools\n"
            "##\n"
            "- [X](https://x.example)\n"
        )
        assert len(catalog.tree) == 1
        assert catalog.tree[0].items[0].title == "X"

    def test_new_category_resets_subcategory(self):
        catalog = parse_awesome_list(
            "## A\n"
            "### A1\n"
            "- [x](https://x.example)\n"
            "## B\n"
            "- [y](https://y.example)\n"
        )
        b = catalog.tree[1]
        assert b.children == []
        assert b.items[0].category == "B"
        assert b.items[0].subcategory is None

    def test_category_items_before_children(self):
        catalog = parse_awesome_list(
            "## A\n"
            "- [p](https://p.example)\n"
            "### A1\n"
            "- [c](https://c.example)\n"
        )
        [a] = catalog.tree
        assert [item.title for item in a.items] == ["p"]
        assert [item.title for item in a.children[0].items] == ["c"]
        assert [item.title for item in catalog.list] == ["p", "c"]

    def test_duplicate_categories_get_distinct_slugs(self):
        catalog = parse_awesome_list(
            "## Tools\n"
            "- [A](https://a.example)\n"
            "## Tools\n"
            "- [B](https://b.example)\n"
        )
        assert [c.slug for c in catalog.tree] == ["tools", "tools-1"]
        assert [c.items[0].title for c in catalog.tree] == ["A", "B"]

    def test_slugs_are_unique_across_levels(self):
        catalog = parse_awesome_list(
            "## Tools Editors\n"
            "## Tools\n"
            "### Editors\n"
        )
        slugs = [catalog.tree[0].slug, catalog.tree[1].slug, catalog.tree[1].children[0].slug]
        assert slugs == ["tools-editors", "tools", "tools-editors-1"]

    def test_heading_without_slug_characters(self):
        catalog = parse_awesome_list("## 🚀\n- [A](https://a.example)\n")
        assert catalog.tree[0].slug == "category"
        assert catalog.tree[0].title == "🚀"

    def test_empty_document(self):
        catalog = parse_awesome_list("")
        assert catalog.tree == []
        assert catalog.list == []
        assert catalog.meta.total_items == 0

    def test_non_text_input_raises(self):
        with pytest.raises(MarkdownParseError):
            parse_awesome_list(None)


class TestInvariants:
    """Structural guarantees every built catalog satisfies."""

    def test_list_is_preorder_traversal(self, sample_catalog):
        assert sample_catalog.list == flatten_tree(sample_catalog.tree)

    def test_total_items_matches_list(self, sample_catalog):
        assert sample_catalog.meta.total_items == len(sample_catalog.list)

    def test_items_reference_their_nodes(self, sample_catalog):
        for category in sample_catalog.tree:
            for item in category.items:
                assert item.category == category.title
                assert item.subcategory is None
            for child in category.children:
                for item in child.items:
                    assert item.category == category.title
                    assert item.subcategory == child.title

    def test_slugs_are_unique(self, sample_catalog):
        slugs = []
        for category in sample_catalog.tree:
            slugs.append(category.slug)
            slugs.extend(child.slug for child in category.children)
        assert len(slugs) == len(set(slugs))

    def test_children_have_no_children(self, sample_catalog):
        for category in sample_catalog.tree:
            for child in category.children:
                assert child.children == []


class TestCleanDescription:
    """Tests for description cleanup."""

    @pytest.mark.parametrize("trailing, expected", [
        (" - Free code editor", "Free code editor"),
        (" – En dash", "En dash"),
        (" — Em dash", "Em dash"),
        ("Plain text", "Plain text"),
        (" - Keeps - inner - dashes", "Keeps - inner - dashes"),
        (" - ", None),
        ("", None),
    ])
    def test_clean_description(self, trailing, expected):
        assert clean_description(trailing) == expected


class TestBuildStats:
    """Tests for catalog statistics."""

    def test_stats(self, sample_catalog):
        stats = build_stats(sample_catalog)
        assert stats["categories_count"] == 2
        assert stats["subcategories_count"] == 3
        assert stats["items_count"] == 6
        assert stats["version"] == 2
        assert stats["by_category"] == {"Development Tools": 4, "Learning Resources": 2}
