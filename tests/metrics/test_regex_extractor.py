"""Tests for the regex-based metric extractor."""

from __future__ import annotations

import textwrap

from repohealth.metrics import RegexMetricExtractor, language_for_path


def _src(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


def test_language_for_path() -> None:
    assert language_for_path("src/app.TS") == "typescript"
    assert language_for_path("lib/widget.py") == "python"
    assert language_for_path("Makefile") is None
    assert language_for_path("docs/readme.md") is None


def test_python_functions_use_indentation_blocks() -> None:
    source = _src(
        """
        def add(a, b):
            # sum
            return a + b


        def branchy(x):
            if x > 1 and x < 5:
                return 1
            elif x:
                return 2
            for i in range(3):
                pass
            return 0
        """
    )

    metrics = RegexMetricExtractor().extract(source, "python")

    assert metrics.language == "python"
    assert [(f.name, f.start_line, f.length) for f in metrics.functions] == [
        ("add", 1, 3),
        ("branchy", 6, 8),
    ]
    assert metrics.functions[0].complexity == 1
    assert metrics.functions[1].complexity == 5
    assert metrics.comment_lines == 1
    assert metrics.max_nesting == 2
    assert metrics.smells == []


def test_javascript_functions_use_brace_blocks_and_detect_smells() -> None:
    source = _src(
        """
        // TODO: handle errors
        function handle(req, res) {
          if (req.ok && res) {
            return 42;
          }
          return 0;
        }
        """
    )

    metrics = RegexMetricExtractor().extract(source, "javascript")

    assert len(metrics.functions) == 1
    handle = metrics.functions[0]
    assert (handle.name, handle.start_line, handle.length, handle.complexity) == ("handle", 2, 6, 3)
    assert metrics.max_nesting == 2
    smells = {smell.kind: smell for smell in metrics.smells}
    assert smells["todo_comments"].count == 1
    assert smells["todo_comments"].severity == "LOW"
    assert smells["magic_numbers"].count == 1


def test_deep_nesting_is_reported_once_per_entry() -> None:
    source = _src(
        """
        def deep(a):
            if a:
                for b in a:
                    while b:
                        if b:
                            try:
                                pass
                            finally:
                                pass
        """
    )

    metrics = RegexMetricExtractor().extract(source, "python")

    smells = {smell.kind: smell for smell in metrics.smells}
    assert smells["deep_nesting"].count == 1
    assert smells["deep_nesting"].severity == "HIGH"
    assert metrics.max_nesting == 6


def test_function_length_is_capped() -> None:
    body = "\n".join("    x = 1" for _ in range(400))
    metrics = RegexMetricExtractor().extract(f"def long():\n{body}\n", "python")
    assert metrics.functions[0].length == 200


def test_unknown_language_uses_brace_defaults() -> None:
    metrics = RegexMetricExtractor().extract("function f() {\n  return 1;\n}\n", "cobol")
    assert metrics.language == "javascript"
    assert metrics.functions[0].name == "f"
