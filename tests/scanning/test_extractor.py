"""Tests for the parser registry and the repository extractor."""

import pytest

from function_insight.cache import ParseCache
from function_insight.exceptions import ParseError, UnsupportedLanguageError
from function_insight.scanning import (
    JavaScriptParser,
    ParserRegistry,
    PythonParser,
    SourceExtractor,
    default_registry,
)


class TestParserRegistry:
    def test_selects_parser_by_extension(self):
        """The parser is chosen by file extension."""
        registry = default_registry()
        assert isinstance(registry.parser_for("a/b.py"), PythonParser)
        assert isinstance(registry.parser_for("a/b.TSX"), JavaScriptParser)

    def test_unsupported_extension(self):
        """Unknown extensions raise with the supported list."""
        registry = default_registry()
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            registry.parser_for("main.go")
        assert exc_info.value.extension == ".go"
        assert ".py" in exc_info.value.supported

    def test_later_registration_replaces_earlier(self):
        """Registering a parser for a taken extension replaces the old one."""
        class OtherPython(PythonParser):
            pass

        other = OtherPython()
        registry = ParserRegistry([PythonParser(), other])
        assert registry.parser_for("x.py") is other


class TestSourceExtractor:
    def test_discover_skips_hidden_and_dependency_dirs(self, tmp_path):
        """Discovery skips hidden, vendored and build directories."""
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "a.py").write_text("def a():\n    pass\n")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "dep.js").write_text("function d() {}\n")
        (tmp_path / ".venv").mkdir()
        (tmp_path / ".venv" / "v.py").write_text("def v():\n    pass\n")
        (tmp_path / "README.md").write_text("# readme\n")

        extractor = SourceExtractor(default_registry())
        assert extractor.discover(tmp_path) == ["src/a.py"]

    def test_parse_errors_are_collected_not_raised(self, tmp_path):
        """Broken neighbours are collected as errors."""
        (tmp_path / "good.py").write_text("def ok():\n    pass\n")
        (tmp_path / "bad.py").write_text("def broken(:\n")

        result = SourceExtractor(default_registry()).extract_all(tmp_path)
        assert list(result.sources) == ["good.py"]
        assert len(result.errors) == 1
        assert isinstance(result.errors[0], ParseError)
        assert result.errors[0].path == "bad.py"

    def test_parse_file_raises_for_target(self, tmp_path):
        """Parsing a single broken file raises."""
        (tmp_path / "bad.py").write_text("def broken(:\n")
        with pytest.raises(ParseError):
            SourceExtractor(default_registry()).parse_file(tmp_path, "bad.py")

    def test_exclude_and_max_files(self, tmp_path):
        """Excluded paths and the file cap are honoured."""
        for i in range(5):
            (tmp_path / f"m{i}.py").write_text(f"def f{i}():\n    pass\n")

        extractor = SourceExtractor(default_registry(), max_files=2)
        result = extractor.extract_all(tmp_path, exclude={"m0.py"})
        assert list(result.sources) == ["m1.py", "m2.py"]
        assert result.truncated

    def test_parallel_extraction_matches_sequential(self, tmp_path):
        """Parallel extraction finds the same functions as sequential."""
        for i in range(12):
            (tmp_path / f"m{i:02d}.py").write_text(f"def f{i}():\n    g{i}()\n")

        extractor = SourceExtractor(default_registry(), max_workers=4)
        parallel = extractor.extract_all(tmp_path, parallel=True)
        sequential = extractor.extract_all(tmp_path, parallel=False)
        assert list(parallel.sources) == list(sequential.sources)
        assert len(parallel.sources) == 12

    def test_parse_cache_serves_unchanged_files(self, tmp_path):
        """Unchanged files are served from the parse cache."""
        (tmp_path / "a.py").write_text("def a():\n    pass\n")
        with ParseCache(str(tmp_path / ".cache")) as cache:
            first = SourceExtractor(default_registry(), parse_cache=cache)
            first.parse_file(tmp_path, "a.py")
            assert first.parsed_count == 1

            second = SourceExtractor(default_registry(), parse_cache=cache)
            parsed = second.parse_file(tmp_path, "a.py")
            assert second.cache_hits == 1
            assert second.parsed_count == 0
            assert parsed.functions[0].local_name == "a"
