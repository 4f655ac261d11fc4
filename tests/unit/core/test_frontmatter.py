"""Tests for front matter stripping and the streaming filter."""
from __future__ import annotations

import pytest

from mdtransclude.core.frontmatter import (
    FrontmatterFilter,
    FrontmatterState,
    has_frontmatter,
    split_frontmatter,
    strip_frontmatter,
)


class TestStripFrontmatter:
    def test_yaml_block(self):
        content = "---\ntitle: Guide\n---\n\n# Guide\nbody"
        assert strip_frontmatter(content) == "# Guide\nbody"

    def test_toml_block(self):
        content = '+++\ntitle = "Guide"\n+++\n# Guide'
        assert strip_frontmatter(content) == "# Guide"

    def test_unclosed_block_is_left_alone(self):
        content = "---\ntitle: Guide\n# Guide"
        assert strip_frontmatter(content) == content

    def test_delimiter_must_be_first_line(self):
        content = "# Guide\n---\nnot: meta\n---"
        assert strip_frontmatter(content) == content
        assert not has_frontmatter(content)

    def test_mismatched_delimiters(self):
        content = "---\na: 1\n+++\nbody"
        assert strip_frontmatter(content) == content

    def test_idempotent(self):
        content = "---\na: 1\n---\nbody"
        once = strip_frontmatter(content)
        assert strip_frontmatter(once) == once == "body"

    def test_empty_block(self):
        assert strip_frontmatter("---\n---\nbody") == "body"

    def test_crlf_block(self):
        assert strip_frontmatter("---\r\na: 1\r\n---\r\nbody") == "body"


class TestSplitFrontmatter:
    def test_metadata(self):
        parsed = split_frontmatter("---\ntitle: Guide\ntags: [a, b]\n---\nbody")
        assert parsed.kind == "yaml"
        assert parsed.metadata() == {"title": "Guide", "tags": ["a", "b"]}
        assert parsed.content == "body"

    def test_toml_metadata_is_not_parsed(self):
        parsed = split_frontmatter('+++\ntitle = "x"\n+++\nbody')
        assert parsed.kind == "toml"
        assert parsed.metadata() == {}

    def test_invalid_yaml_metadata(self):
        parsed = split_frontmatter("---\n: : :\n  - [\n---\nbody")
        with pytest.raises(ValueError):
            parsed.metadata()

    def test_non_mapping_metadata(self):
        parsed = split_frontmatter("---\n- a\n- b\n---\nbody")
        with pytest.raises(ValueError):
            parsed.metadata()

    def test_no_frontmatter(self):
        parsed = split_frontmatter("body")
        assert not parsed.has_frontmatter
        assert parsed.metadata() == {}


def _run(lines):
    fm = FrontmatterFilter()
    return [line for line in lines if not fm.suppress(line)], fm


class TestFrontmatterFilter:
    def test_yaml_block_suppressed(self):
        kept, fm = _run(["---", "title: x", "---", "# Body"])
        assert kept == ["# Body"]
        assert fm.state is FrontmatterState.DONE

    def test_toml_block_suppressed(self):
        kept, _ = _run(["+++", 'a = "b"', "+++", "text"])
        assert kept == ["text"]

    def test_leading_blank_lines_pass_through(self):
        kept, _ = _run(["", "---", "a: 1", "---", "text"])
        assert kept == ["", "text"]

    def test_no_frontmatter(self):
        kept, fm = _run(["# Title", "---", "after rule"])
        assert kept == ["# Title", "---", "after rule"]
        assert fm.state is FrontmatterState.DONE

    def test_state_progression(self):
        fm = FrontmatterFilter()
        assert fm.state is FrontmatterState.NONE
        fm.suppress("---")
        assert fm.state is FrontmatterState.YAML_OPEN
        fm.suppress("a: 1")
        assert fm.state is FrontmatterState.INSIDE
        fm.suppress("---")
        assert fm.state is FrontmatterState.DONE

    def test_other_delimiter_inside_block(self):
        kept, _ = _run(["---", "+++", "---", "text"])
        assert kept == ["text"]

    def test_unclosed_block_suppresses_everything(self):
        kept, fm = _run(["---", "a: 1", "# Heading", "body"])
        assert kept == []
        assert fm.state is FrontmatterState.INSIDE
