"""Tests for the recursive line transcluder."""
from __future__ import annotations

from pathlib import Path

import pytest

from mdtransclude.core.cache import MemoryFileCache
from mdtransclude.core.engine import LineTranscluder, compose_line, default_cache
from mdtransclude.core.errors import ErrorCode
from mdtransclude.core.exceptions import TransformerError
from mdtransclude.core.models import ProcessedReference, ResolutionResult, TransclusionOptions
from mdtransclude.core.tokenizer import parse_references
from mdtransclude.core.transformers import ContentTransformer, FunctionTransformer, TransformContext


def _engine(root: Path, **kwargs) -> LineTranscluder:
    return LineTranscluder(TransclusionOptions(base_path=str(root), **kwargs))


CHAIN_LENGTH = 52


@pytest.fixture(scope="module")
def chain_root(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Files d0 .. d51, each including the next one."""
    root = tmp_path_factory.mktemp("chain")
    for i in range(CHAIN_LENGTH):
        (root / f"d{i}.md").write_text(f"{i} ![[d{i + 1}]]", encoding="utf-8")
    return root


class TestProcessLine:
    def test_line_without_markers_is_unchanged(self, tmp_path: Path):
        engine = _engine(tmp_path)
        line = "plain [[wiki]] text with ![not a marker]"
        assert engine.process_line(line) == line
        assert engine.errors == []
        assert engine.processed_files == []

    def test_simple_inclusion(self, write_tree):
        root = write_tree({"a.md": "alpha\n"})
        engine = _engine(root)

        assert engine.process_line("A ![[a]] B") == "A alpha B"
        assert engine.processed_files == [str(root / "a.md")]

    def test_included_content_is_trimmed(self, write_tree):
        root = write_tree({"a.md": "\n\n  body  \n\n"})
        assert _engine(root).process_line("[![[a]]]") == "[body]"

    def test_multiple_references_keep_surrounding_text(self, write_tree):
        root = write_tree({"a.md": "A", "b.md": "B"})
        assert _engine(root).process_line("x ![[a]] y ![[b]] z") == "x A y B z"

    def test_heading_reference(self, write_tree):
        root = write_tree({"guide.md": "# Guide\nintro\n## Setup\nsteps\n## Other\nno"})
        assert _engine(root).process_line("![[guide#setup]]") == "## Setup\nsteps"

    def test_range_reference(self, write_tree):
        root = write_tree({"guide.md": "# A\na\n# B\nb\n# C\nc"})
        assert _engine(root).process_line("![[guide#A:C]]") == "# A\na\n# B\nb"

    def test_missing_file_becomes_marker(self, tmp_path: Path):
        engine = _engine(tmp_path)
        output = engine.process_line("before ![[missing]] after", line_number=3)

        assert output == "before <!-- Error: File not found: missing --> after"
        (error,) = engine.errors
        assert error.code is ErrorCode.FILE_NOT_FOUND
        assert error.path == "missing"
        assert error.line == 3
        assert error.source is None

    def test_failure_does_not_stop_siblings(self, write_tree):
        root = write_tree({"ok.md": "fine"})
        engine = _engine(root)

        output = engine.process_line("![[nope]] ![[ok]]")
        assert output.endswith(" fine")
        assert output.startswith("<!-- Error:")
        assert len(engine.errors) == 1

    def test_missing_heading(self, write_tree):
        root = write_tree({"guide.md": "# Guide\ntext"})
        engine = _engine(root)

        output = engine.process_line("![[guide#Nowhere]]")
        (error,) = engine.errors
        assert error.code is ErrorCode.HEADING_NOT_FOUND
        assert error.message == f'Heading "Nowhere" not found in {root / "guide.md"}'
        assert output == f"<!-- Error: {error.message} -->"

    def test_security_violation(self, tmp_path: Path):
        engine = _engine(tmp_path)
        engine.process_line("![[/etc/passwd]]")
        (error,) = engine.errors
        assert error.code is ErrorCode.ABSOLUTE_PATH
        assert error.code.is_security

    def test_binary_file_is_read_error(self, tmp_path: Path):
        (tmp_path / "bin.md").write_bytes(b"\x00\x01")
        engine = _engine(tmp_path)
        engine.process_line("![[bin]]")
        (error,) = engine.errors
        assert error.code is ErrorCode.READ_ERROR
        assert error.path == str(tmp_path / "bin.md")

    def test_file_too_large_is_read_error(self, write_tree):
        root = write_tree({"big.md": "x" * 50})
        engine = _engine(root, max_file_size=10)
        engine.process_line("![[big]]")
        assert [e.code for e in engine.errors] == [ErrorCode.READ_ERROR]


class TestRecursion:
    def test_nested_inclusion(self, write_tree):
        root = write_tree({"a.md": "A ![[b]]", "b.md": "B ![[c]]", "c.md": "C"})
        engine = _engine(root)
        assert engine.process_line("![[a]]") == "A B C"
        assert engine.processed_files == [str(root / n) for n in ("a.md", "b.md", "c.md")]

    def test_nested_reference_resolves_against_including_file(self, write_tree):
        root = write_tree(
            {"sub/a.md": "![[b]]", "sub/b.md": "sub b", "b.md": "root b"}
        )
        assert _engine(root).process_line("![[sub/a]]") == "sub b"

    def test_nested_errors_report_source_and_line(self, write_tree):
        root = write_tree({"a.md": "line one\n![[missing]]"})
        engine = _engine(root)
        engine.process_line("![[a]]", line_number=7)

        (error,) = engine.errors
        assert error.source == str(root / "a.md")
        assert error.line == 2

    def test_cycle_is_detected(self, write_tree):
        root = write_tree({"a.md": "A ![[b]]", "b.md": "B ![[a]]"})
        engine = _engine(root)

        output = engine.process_line("![[a]]")
        (error,) = engine.errors
        a, b = str(root / "a.md"), str(root / "b.md")
        assert error.code is ErrorCode.CIRCULAR_REFERENCE
        assert error.message == f"Circular reference detected: {a} -> {b} -> {a}"
        assert output.startswith("A B <!-- Error: Circular reference detected:")

    def test_self_reference(self, write_tree):
        root = write_tree({"a.md": "self ![[a]]"})
        engine = _engine(root)
        engine.process_line("![[a]]")
        assert [e.code for e in engine.errors] == [ErrorCode.CIRCULAR_REFERENCE]

    def test_diamond_is_not_a_cycle(self, write_tree):
        root = write_tree({"b.md": "B ![[d]]", "c.md": "C ![[d]]", "d.md": "D"})
        engine = _engine(root)

        assert engine.process_line("![[b]] | ![[c]]") == "B D | C D"
        assert engine.errors == []
        assert engine.processed_files == [str(root / n) for n in ("b.md", "d.md", "c.md")]

    def test_same_file_twice_on_one_line(self, write_tree):
        root = write_tree({"a.md": "A"})
        engine = _engine(root)
        assert engine.process_line("![[a]]![[a]]") == "AA"
        assert engine.processed_files == [str(root / "a.md")]

    def test_initial_file_seeds_the_chain(self, write_tree):
        root = write_tree({"main.md": "", "a.md": "![[main]]"})
        engine = _engine(root, initial_file_path=str(root / "main.md"))
        engine.process_line("![[a]]")
        assert [e.code for e in engine.errors] == [ErrorCode.CIRCULAR_REFERENCE]

    @pytest.mark.parametrize("max_depth", range(1, CHAIN_LENGTH - 1))
    def test_depth_limit(self, chain_root: Path, max_depth: int):
        engine = _engine(chain_root, max_depth=max_depth)

        output = engine.process_line("![[d0]]")
        (error,) = engine.errors
        assert error.code is ErrorCode.MAX_DEPTH_EXCEEDED
        assert error.message == f"Maximum transclusion depth ({max_depth}) exceeded: d{max_depth}"
        expected_prefix = " ".join(str(i) for i in range(max_depth))
        assert output.startswith(expected_prefix + " <!-- Error: Maximum transclusion depth")
        assert len(engine.processed_files) == max_depth

    def test_zero_depth_includes_nothing(self, write_tree):
        root = write_tree({"a.md": "A"})
        engine = _engine(root, max_depth=0)
        assert engine.process_line("![[a]]").startswith("<!-- Error:")
        assert engine.processed_files == []

    def test_fenced_markers_in_included_file_stay_literal(self, write_tree):
        root = write_tree({"a.md": "```\n![[b]]\n```\n![[b]]", "b.md": "B"})
        assert _engine(root).process_line("![[a]]") == "```\n![[b]]\n```\nB"

    def test_inline_code_markers_stay_literal(self, write_tree):
        root = write_tree({"a.md": "use `![[b]]` for B"})
        assert _engine(root).process_line("![[a]]") == "use `![[b]]` for B"

    def test_frontmatter_stripped_from_included_files(self, write_tree):
        root = write_tree({"a.md": "---\ntitle: A\n---\n\nbody"})
        assert _engine(root, strip_frontmatter=True).process_line("![[a]]") == "body"
        assert _engine(root).process_line("![[a]]").startswith("---")


class TestListenersAndTransformers:
    def test_listeners(self, write_tree):
        root = write_tree({"a.md": "A ![[missing]]"})
        errors, files = [], []
        engine = LineTranscluder(
            TransclusionOptions(base_path=str(root)), on_error=errors.append, on_file=files.append
        )
        extra = []
        engine.add_file_listener(extra.append)

        engine.process_line("![[a]] ![[a]]")
        assert files == extra == [str(root / "a.md")]
        assert [e.code for e in errors] == [ErrorCode.FILE_NOT_FOUND] * 2

    def test_reset(self, write_tree):
        root = write_tree({"a.md": "A"})
        engine = _engine(root)
        engine.process_line("![[a]] ![[b]]")
        engine.reset()
        assert engine.errors == []
        assert engine.processed_files == []

    def test_transformers_run_on_included_content(self, write_tree):
        root = write_tree({"a.md": "a ![[b]]", "b.md": "b"})
        seen = []

        class Recorder(ContentTransformer):
            def transform(self, content: str, context: TransformContext) -> str:
                seen.append((Path(context.path).name, context.depth))
                return content + "!"

        engine = _engine(root, transformers=[Recorder()])
        # Nested markers are expanded after the transformer ran.
        assert engine.process_line("![[a]]") == "a b!!"
        assert seen == [("a.md", 0), ("b.md", 1)]

    def test_transformer_failure_propagates(self, write_tree):
        root = write_tree({"a.md": "a"})

        def fail(content: str) -> str:
            raise RuntimeError("nope")

        engine = _engine(root, transformers=[FunctionTransformer(fail)])
        with pytest.raises(TransformerError):
            engine.process_line("![[a]]")


class TestDefaultCache:
    def test_explicit_cache_wins(self):
        cache = MemoryFileCache()
        assert default_cache(TransclusionOptions(cache=cache, cache_enabled=False)) is cache

    def test_memory_cache_by_default(self):
        assert isinstance(default_cache(TransclusionOptions()), MemoryFileCache)

    @pytest.mark.parametrize(
        "overrides",
        [{"cache_enabled": False}, {"validate_only": True}, {"max_depth": 1}],
    )
    def test_no_cache(self, overrides):
        assert default_cache(TransclusionOptions(**overrides)) is None

    def test_shared_cache_is_used(self, write_tree):
        root = write_tree({"a.md": "A"})
        cache = MemoryFileCache()
        _engine(root, cache=cache).process_line("![[a]]")
        assert str(root / "a.md") in cache


def test_compose_line_splices_at_offsets():
    line = "x ![[a]] y ![[b]] z"
    tokens = parse_references(line)
    processed = [
        ProcessedReference(t, ResolutionResult(original_reference=t.path, exists=True), content=t.path.upper())
        for t in tokens
    ]
    assert compose_line(line, processed) == "x A y B z"
    assert compose_line(line, []) == line
