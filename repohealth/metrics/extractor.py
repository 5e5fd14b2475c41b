"""Heuristic source metrics: function boundaries, complexity, nesting, smells."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Sequence, Set, Tuple

MAX_FUNCTION_LENGTH = 200
DEEP_NESTING_LEVEL = 5
_INDENT_WIDTH = 4
_MAX_SIGNATURE_LINES = 3


@dataclass
class FunctionMetrics:
    """Estimated shape of a single function."""

    name: str
    start_line: int
    length: int
    complexity: int


@dataclass
class SmellMatch:
    """Occurrences of one catalogued code smell in a file."""

    kind: str
    count: int
    severity: str
    description: str


@dataclass
class FileMetrics:
    """Everything the code-quality collector needs to score one file."""

    language: str
    line_count: int
    code_lines: int
    comment_lines: int
    max_nesting: int
    functions: List[FunctionMetrics] = field(default_factory=list)
    smells: List[SmellMatch] = field(default_factory=list)

    @property
    def comment_ratio(self) -> float:
        non_empty = self.code_lines + self.comment_lines
        return self.comment_lines / non_empty if non_empty else 0.0


class MetricExtractor(ABC):
    """Strategy that turns source text into :class:`FileMetrics`."""

    @abstractmethod
    def extract(self, source: str, language: str) -> FileMetrics:
        """Return metrics for ``source`` written in ``language``."""


@dataclass(frozen=True)
class LanguageProfile:
    """Per-language patterns used by the regex extractor."""

    name: str
    function_patterns: Tuple[Pattern[str], ...]
    complexity_patterns: Tuple[Pattern[str], ...]
    line_comment: Tuple[str, ...]
    block_comment: Optional[Tuple[str, str]] = None
    indent_based: bool = False


_BRACE_COMPLEXITY = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bif\s*\(",
        r"\bwhile\s*\(",
        r"\bfor\s*\(",
        r"\bswitch\s*\(",
        r"\bcase\s+",
        r"\bcatch\s*\(",
        r"&&",
        r"\|\|",
        r"\?[^:;\n]*:",
    )
)

_JS_FUNCTIONS = tuple(
    re.compile(pattern, re.MULTILINE)
    for pattern in (
        r"\bfunction\s*\*?\s*([A-Za-z_$][\w$]*)\s*\(",
        r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?(?:function\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)",
        r"^\s*(?:async\s+)?(?!if\b|for\b|while\b|switch\b|catch\b|return\b)([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*\{",
    )
)

_TS_FUNCTIONS = _JS_FUNCTIONS + (
    re.compile(
        r"^\s*(?:public|private|protected|static|async|\s)*(?!if\b|for\b|while\b|switch\b|catch\b|return\b)([A-Za-z_$][\w$]*)\s*\([^)]*\)\s*:\s*[^={;]+\{",
        re.MULTILINE,
    ),
)

_C_FAMILY_FUNCTIONS = (
    re.compile(
        r"^\s*(?:[\w<>\[\],.?*&]+\s+)+(?!if\b|for\b|while\b|switch\b|catch\b|return\b|new\b|else\b)([A-Za-z_]\w*)\s*\([^;{]*\)\s*(?:const\s*)?(?:throws\s+[\w.,\s]+)?\{",
        re.MULTILINE,
    ),
)

PROFILES: Dict[str, LanguageProfile] = {
    "javascript": LanguageProfile(
        name="javascript",
        function_patterns=_JS_FUNCTIONS,
        complexity_patterns=_BRACE_COMPLEXITY,
        line_comment=("//",),
        block_comment=("/*", "*/"),
    ),
    "typescript": LanguageProfile(
        name="typescript",
        function_patterns=_TS_FUNCTIONS,
        complexity_patterns=_BRACE_COMPLEXITY,
        line_comment=("//",),
        block_comment=("/*", "*/"),
    ),
    "python": LanguageProfile(
        name="python",
        function_patterns=(
            re.compile(r"^[ \t]*(?:async[ \t]+)?def[ \t]+([A-Za-z_]\w*)[ \t]*\(", re.MULTILINE),
        ),
        complexity_patterns=tuple(
            re.compile(pattern)
            for pattern in (
                r"\bif\b",
                r"\belif\b",
                r"\bwhile\b",
                r"\bfor\b",
                r"\bexcept\b",
                r"\band\b",
                r"\bor\b",
            )
        ),
        line_comment=("#",),
        indent_based=True,
    ),
    "ruby": LanguageProfile(
        name="ruby",
        function_patterns=(re.compile(r"^[ \t]*def[ \t]+([A-Za-z_][\w?!.]*)", re.MULTILINE),),
        complexity_patterns=tuple(
            re.compile(pattern)
            for pattern in (r"\bif\b", r"\belsif\b", r"\bunless\b", r"\bwhile\b", r"\bwhen\b", r"\brescue\b", r"&&", r"\|\|")
        ),
        line_comment=("#",),
        indent_based=True,
    ),
    "go": LanguageProfile(
        name="go",
        function_patterns=(
            re.compile(r"^func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)\s*\(", re.MULTILINE),
        ),
        complexity_patterns=tuple(
            re.compile(pattern)
            for pattern in (r"\bif\b", r"\bfor\b", r"\bswitch\b", r"\bcase\b", r"\bselect\b", r"&&", r"\|\|")
        ),
        line_comment=("//",),
        block_comment=("/*", "*/"),
    ),
    "rust": LanguageProfile(
        name="rust",
        function_patterns=(re.compile(r"\bfn\s+([A-Za-z_]\w*)\s*[<(]"),),
        complexity_patterns=tuple(
            re.compile(pattern)
            for pattern in (r"\bif\b", r"\bwhile\b", r"\bfor\b", r"\bloop\b", r"\bmatch\b", r"=>", r"&&", r"\|\|", r"\?")
        ),
        line_comment=("//",),
        block_comment=("/*", "*/"),
    ),
}

for _name in ("java", "csharp", "cpp", "c", "kotlin", "swift", "php", "scala"):
    PROFILES[_name] = LanguageProfile(
        name=_name,
        function_patterns=_C_FAMILY_FUNCTIONS,
        complexity_patterns=_BRACE_COMPLEXITY,
        line_comment=("//",),
        block_comment=("/*", "*/"),
    )

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".cs": "csharp",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".kt": "kotlin",
    ".swift": "swift",
    ".php": "php",
    ".scala": "scala",
}

_LONG_PARAMETERS = re.compile(r"\(([^()]{50,})\)")
_MAGIC_NUMBER = re.compile(r"(?<![\w.])\d{2,}(?![\w.])")
_TODO_MARKER = re.compile(r"\b(?:TODO|FIXME|HACK|XXX)\b:?", re.IGNORECASE)
_TRIPLE_QUOTES = ('"""', "'''")

_SMELL_CATALOG: Dict[str, Tuple[str, str]] = {
    "long_parameter_list": ("MEDIUM", "Function has too many parameters"),
    "deep_nesting": ("HIGH", "Code has deep nesting levels"),
    "magic_numbers": ("LOW", "Magic numbers should be constants"),
    "todo_comments": ("LOW", "Unresolved TODO/FIXME comments"),
    "duplicate_code": ("MEDIUM", "Potential duplicate code blocks"),
}


def language_for_path(path: str) -> Optional[str]:
    """Return the language name for a file path, or None when unsupported."""
    lowered = path.lower()
    dot = lowered.rfind(".")
    if dot == -1:
        return None
    return LANGUAGE_BY_EXTENSION.get(lowered[dot:])


class RegexMetricExtractor(MetricExtractor):
    """Line and regex based approximation of structural metrics."""

    def __init__(self, profiles: Dict[str, LanguageProfile] | None = None) -> None:
        self.profiles = dict(profiles or PROFILES)

    def extract(self, source: str, language: str) -> FileMetrics:
        profile = self.profiles.get(language) or self.profiles["javascript"]
        lines = source.splitlines()
        comment_mask = _comment_mask(lines, profile)
        code_lines = sum(
            1 for line, is_comment in zip(lines, comment_mask) if line.strip() and not is_comment
        )
        comment_lines = sum(
            1 for line, is_comment in zip(lines, comment_mask) if line.strip() and is_comment
        )
        depths = (
            _indent_depths(lines, comment_mask)
            if profile.indent_based
            else _brace_depths(lines, comment_mask)
        )
        code_only = [
            "" if is_comment else line for line, is_comment in zip(lines, comment_mask)
        ]

        functions = self._functions(source, lines, profile)
        smells = self._smells(source, code_only, depths)

        return FileMetrics(
            language=profile.name,
            line_count=len(lines),
            code_lines=code_lines,
            comment_lines=comment_lines,
            max_nesting=max(depths, default=0),
            functions=functions,
            smells=smells,
        )

    def _functions(
        self, source: str, lines: Sequence[str], profile: LanguageProfile
    ) -> List[FunctionMetrics]:
        seen: Set[int] = set()
        functions: List[FunctionMetrics] = []
        for pattern in profile.function_patterns:
            for match in pattern.finditer(source):
                start_index = source.count("\n", 0, match.start(1))
                if start_index in seen:
                    continue
                seen.add(start_index)
                if profile.indent_based:
                    length = _indent_block_length(lines, start_index)
                else:
                    length = _brace_block_length(lines, start_index)
                body = "\n".join(lines[start_index : start_index + length])
                complexity = 1 + sum(
                    len(pattern.findall(body)) for pattern in profile.complexity_patterns
                )
                functions.append(
                    FunctionMetrics(
                        name=match.group(1),
                        start_line=start_index + 1,
                        length=length,
                        complexity=complexity,
                    )
                )
        functions.sort(key=lambda item: item.start_line)
        return functions

    def _smells(
        self, source: str, code_lines: Sequence[str], depths: Sequence[int]
    ) -> List[SmellMatch]:
        code_text = "\n".join(code_lines)
        counts = {
            "long_parameter_list": sum(
                1 for match in _LONG_PARAMETERS.finditer(code_text) if match.group(1).count(",") >= 3
            ),
            "deep_nesting": _deep_nesting_entries(depths),
            "magic_numbers": len(_MAGIC_NUMBER.findall(_strip_strings(code_text))),
            "todo_comments": len(_TODO_MARKER.findall(source)),
            "duplicate_code": _duplicate_windows(code_lines),
        }
        smells: List[SmellMatch] = []
        for kind, count in counts.items():
            if count <= 0:
                continue
            severity, description = _SMELL_CATALOG[kind]
            smells.append(
                SmellMatch(kind=kind, count=count, severity=severity, description=description)
            )
        return smells


def _comment_mask(lines: Sequence[str], profile: LanguageProfile) -> List[bool]:
    mask: List[bool] = []
    in_block: Optional[str] = None
    for line in lines:
        stripped = line.strip()
        if in_block is not None:
            mask.append(True)
            if in_block in stripped:
                in_block = None
            continue
        if not stripped:
            mask.append(False)
            continue
        if stripped.startswith(profile.line_comment):
            mask.append(True)
            continue
        if profile.block_comment and stripped.startswith(profile.block_comment[0]):
            mask.append(True)
            end = profile.block_comment[1]
            if end not in stripped[len(profile.block_comment[0]) :]:
                in_block = end
            continue
        if profile.name == "python" and stripped.startswith(_TRIPLE_QUOTES):
            quote = stripped[:3]
            mask.append(True)
            if stripped.count(quote) == 1:
                in_block = quote
            continue
        mask.append(False)
    return mask


def _brace_depths(lines: Sequence[str], comment_mask: Sequence[bool]) -> List[int]:
    depths: List[int] = []
    depth = 0
    for line, is_comment in zip(lines, comment_mask):
        if is_comment:
            depths.append(depth)
            continue
        peak = depth
        for char in _strip_strings(line):
            if char == "{":
                depth += 1
                peak = max(peak, depth)
            elif char == "}":
                depth = max(0, depth - 1)
        depths.append(peak)
    return depths


def _indent_depths(lines: Sequence[str], comment_mask: Sequence[bool]) -> List[int]:
    depths: List[int] = []
    current = 0
    for line, is_comment in zip(lines, comment_mask):
        if not is_comment and line.strip():
            expanded = line.expandtabs(_INDENT_WIDTH)
            indent = len(expanded) - len(expanded.lstrip(" "))
            current = indent // _INDENT_WIDTH
        depths.append(current)
    return depths


def _deep_nesting_entries(depths: Sequence[int]) -> int:
    entries = 0
    previous = 0
    for depth in depths:
        if depth >= DEEP_NESTING_LEVEL > previous:
            entries += 1
        previous = depth
    return entries


def _brace_block_length(lines: Sequence[str], start: int) -> int:
    balance = 0
    opened = False
    end = min(len(lines), start + MAX_FUNCTION_LENGTH)
    for index in range(start, end):
        cleaned = _strip_strings(lines[index])
        opens = cleaned.count("{")
        closes = cleaned.count("}")
        if opens:
            opened = True
        elif not opened and index - start >= _MAX_SIGNATURE_LINES:
            # Expression-bodied arrow functions and prototypes have no block.
            return 1
        balance += opens - closes
        if opened and balance <= 0:
            return index - start + 1
    return max(1, end - start) if opened else 1


def _indent_block_length(lines: Sequence[str], start: int) -> int:
    header = lines[start].expandtabs(_INDENT_WIDTH)
    base_indent = len(header) - len(header.lstrip(" "))
    last_body = start
    end = min(len(lines), start + MAX_FUNCTION_LENGTH)
    for index in range(start + 1, end):
        line = lines[index].expandtabs(_INDENT_WIDTH)
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip(" "))
        if indent <= base_indent and not line.lstrip().startswith((")", "]", "}")):
            break
        last_body = index
    return last_body - start + 1


def _duplicate_windows(code_lines: Sequence[str], window: int = 3) -> int:
    normalised = [" ".join(line.split()) for line in code_lines]
    meaningful = [line for line in normalised if len(line) >= 10]
    seen: Set[Tuple[str, ...]] = set()
    duplicates = 0
    index = 0
    while index + window <= len(meaningful):
        block = tuple(meaningful[index : index + window])
        if block in seen:
            duplicates += 1
            index += window
            continue
        seen.add(block)
        index += 1
    return duplicates


_STRING_LITERAL = re.compile(r"\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*'|`(?:\\.|[^`\\])*`")


def _strip_strings(text: str) -> str:
    return _STRING_LITERAL.sub('""', text)


__all__ = [
    "FileMetrics",
    "FunctionMetrics",
    "LANGUAGE_BY_EXTENSION",
    "LanguageProfile",
    "MetricExtractor",
    "PROFILES",
    "RegexMetricExtractor",
    "SmellMatch",
    "language_for_path",
]
