"""Dependency manifest parsing for the supported package ecosystems."""

from __future__ import annotations

import json
import re
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from ..errors import ParseError

_REQUIREMENT_SPLIT = re.compile(r"[<>=!~;\[\s@]")
_LINT_TOOLS = ("ruff", "flake8", "pylint", "black", "mypy", "isort")
_TEST_TOOLS = ("pytest", "nose2", "tox", "nox", "coverage")
_BUILD_TOOLS = ("build", "setuptools", "hatchling", "poetry-core", "flit-core", "wheel")
_PHP_TEST_TOOLS = ("phpunit/phpunit", "pestphp/pest", "codeception/codeception")
_PHP_LINT_TOOLS = (
    "squizlabs/php_codesniffer",
    "phpstan/phpstan",
    "vimeo/psalm",
    "friendsofphp/php-cs-fixer",
)
_RUBY_TEST_TOOLS = ("rspec", "rspec-rails", "minitest", "cucumber")
_RUBY_LINT_TOOLS = ("rubocop", "standard", "reek")
_GO_REQUIRE = re.compile(r"^(\S+)\s+(v\S+)$")
_GEM = re.compile(r"""^gem\s*\(?\s*["']([^"']+)["'](?:\s*,\s*["']([^"']+)["'])?""")
_RUBY_BLOCK = re.compile(r"\bdo(?:\s*\|[^|]*\|)?$")
_RUBY_DEV_GROUP = re.compile(r":(?:development|test)\b")


@dataclass
class Manifest:
    """Dependencies and tooling declared by one manifest file."""

    ecosystem: str
    filename: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    has_test: bool = False
    has_lint: bool = False
    has_build: bool = False
    has_engines: bool = False

    def all_dependencies(self) -> List[Tuple[str, str, bool]]:
        """Return ``(name, spec, is_dev)`` triples, runtime dependencies first."""
        runtime = [(name, spec, False) for name, spec in self.dependencies.items()]
        dev = [
            (name, spec, True)
            for name, spec in self.dev_dependencies.items()
            if name not in self.dependencies
        ]
        return runtime + dev


class Ecosystem(ABC):
    """A package ecosystem: the manifests it reads and the registry it queries."""

    name: str = ""
    registry: str = ""
    manifest_names: Tuple[str, ...] = ()
    # Packages with known security or maintenance problems, lower-cased.
    known_problematic: FrozenSet[str] = frozenset()

    def is_problematic(self, package: str) -> bool:
        return package.lower() in self.known_problematic

    @abstractmethod
    def parse_manifest(self, filename: str, text: str) -> Manifest:
        """Parse ``text`` read from ``filename``; raise ParseError if malformed."""


class NpmEcosystem(Ecosystem):
    name = "npm"
    registry = "npm"
    manifest_names = ("package.json",)
    known_problematic = frozenset({"event-stream", "flatmap-stream", "eslint-scope", "getcookies"})

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid {filename}: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError(f"Invalid {filename}: expected a JSON object")

        scripts = data.get("scripts")
        scripts = scripts if isinstance(scripts, dict) else {}
        engines = data.get("engines")
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=_string_mapping(data.get("dependencies")),
            dev_dependencies=_string_mapping(data.get("devDependencies")),
            has_test="test" in scripts and "no test specified" not in str(scripts["test"]),
            has_lint="lint" in scripts,
            has_build="build" in scripts,
            has_engines=isinstance(engines, dict) and bool(engines),
        )


class PythonEcosystem(Ecosystem):
    name = "python"
    registry = "pypi"
    manifest_names = ("pyproject.toml", "requirements.txt")
    known_problematic = frozenset({"django-debug-toolbar", "pillow"})

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        if filename.endswith(".toml"):
            return self._parse_pyproject(filename, text)
        return self._parse_requirements(filename, text)

    def _parse_pyproject(self, filename: str, text: str) -> Manifest:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(f"Invalid {filename}: {exc}") from exc

        dependencies: Dict[str, str] = {}
        dev_dependencies: Dict[str, str] = {}
        has_engines = False

        project = data.get("project")
        if isinstance(project, dict):
            dependencies.update(_requirement_mapping(project.get("dependencies") or []))
            optional = project.get("optional-dependencies") or {}
            if isinstance(optional, dict):
                for values in optional.values():
                    dev_dependencies.update(_requirement_mapping(values or []))
            has_engines = bool(project.get("requires-python"))

        tool = data.get("tool") if isinstance(data.get("tool"), dict) else {}
        poetry = tool.get("poetry", {}) if isinstance(tool.get("poetry"), dict) else {}
        poetry_deps = poetry.get("dependencies", {}) or {}
        if isinstance(poetry_deps, dict):
            for name, spec in poetry_deps.items():
                if name.lower() == "python":
                    has_engines = True
                    continue
                dependencies[name] = _poetry_spec(spec)
        poetry_dev = poetry.get("group", {}) if isinstance(poetry.get("group"), dict) else {}
        for group in poetry_dev.values():
            group_deps = group.get("dependencies", {}) if isinstance(group, dict) else {}
            for name, spec in (group_deps or {}).items():
                dev_dependencies[name] = _poetry_spec(spec)

        declared = {name.lower() for name in list(dependencies) + list(dev_dependencies)}
        tool_names = {name.lower() for name in tool}
        build_system = data.get("build-system")
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            has_test=_mentions(declared | tool_names, _TEST_TOOLS),
            has_lint=_mentions(declared | tool_names, _LINT_TOOLS),
            has_build=isinstance(build_system, dict) and bool(build_system.get("build-backend")),
            has_engines=has_engines,
        )

    def _parse_requirements(self, filename: str, text: str) -> Manifest:
        requirements: List[str] = []
        for line in text.splitlines():
            stripped = line.split("#", 1)[0].strip()
            if not stripped or stripped.startswith("-"):
                continue
            requirements.append(stripped)
        dependencies = _requirement_mapping(requirements)
        declared = {name.lower() for name in dependencies}
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=dependencies,
            has_test=_mentions(declared, _TEST_TOOLS),
            has_lint=_mentions(declared, _LINT_TOOLS),
            has_build=_mentions(declared, _BUILD_TOOLS),
        )


class GoEcosystem(Ecosystem):
    name = "go"
    registry = "go"
    manifest_names = ("go.mod",)

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        dependencies: Dict[str, str] = {}
        has_module = False
        has_engines = False
        block = None
        for raw in text.splitlines():
            line, _, comment = raw.partition("//")
            line = line.strip()
            if not line:
                continue
            if block is not None:
                if line == ")":
                    block = None
                elif block == "require":
                    self._require(filename, line, comment, dependencies)
                continue
            directive, _, rest = line.replace("\t", " ").partition(" ")
            rest = rest.strip()
            if rest == "(":
                block = directive
            elif directive == "require":
                self._require(filename, rest, comment, dependencies)
            elif directive == "module":
                has_module = True
            elif directive == "go":
                has_engines = True
        if block is not None:
            raise ParseError(f"Invalid {filename}: unterminated {block} block")
        if not has_module:
            raise ParseError(f"Invalid {filename}: missing module directive")
        # The go toolchain ships test and build commands.
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=dependencies,
            has_test=True,
            has_build=True,
            has_engines=has_engines,
        )

    @staticmethod
    def _require(filename: str, entry: str, comment: str, dependencies: Dict[str, str]) -> None:
        match = _GO_REQUIRE.match(entry)
        if match is None:
            raise ParseError(f"Invalid {filename}: cannot read requirement {entry!r}")
        if "indirect" in comment:
            return
        dependencies[match.group(1)] = match.group(2)


class RustEcosystem(Ecosystem):
    name = "rust"
    registry = "crates"
    manifest_names = ("Cargo.toml",)

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ParseError(f"Invalid {filename}: {exc}") from exc

        package = data.get("package") if isinstance(data.get("package"), dict) else {}
        dev_dependencies = _table_mapping(data.get("dev-dependencies"))
        dev_dependencies.update(_table_mapping(data.get("build-dependencies")))
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=_table_mapping(data.get("dependencies")),
            dev_dependencies=dev_dependencies,
            has_test=True,
            has_lint="lints" in data or "lints" in package,
            has_build=True,
            has_engines=bool(package.get("rust-version")),
        )


class PhpEcosystem(Ecosystem):
    name = "php"
    registry = "packagist"
    manifest_names = ("composer.json",)

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid {filename}: {exc}") from exc
        if not isinstance(data, dict):
            raise ParseError(f"Invalid {filename}: expected a JSON object")

        required = _string_mapping(data.get("require"))
        has_engines = "php" in required
        dependencies = {name: spec for name, spec in required.items() if _is_composer_package(name)}
        dev_dependencies = {
            name: spec
            for name, spec in _string_mapping(data.get("require-dev")).items()
            if _is_composer_package(name)
        }
        scripts = data.get("scripts")
        scripts = scripts if isinstance(scripts, dict) else {}
        declared = {name.lower() for name in list(dependencies) + list(dev_dependencies)}
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            has_test="test" in scripts or _mentions(declared, _PHP_TEST_TOOLS),
            has_lint="lint" in scripts or _mentions(declared, _PHP_LINT_TOOLS),
            has_build="build" in scripts,
            has_engines=has_engines,
        )


class RubyEcosystem(Ecosystem):
    name = "ruby"
    registry = "rubygems"
    manifest_names = ("Gemfile",)

    def parse_manifest(self, filename: str, text: str) -> Manifest:
        dependencies: Dict[str, str] = {}
        dev_dependencies: Dict[str, str] = {}
        has_engines = False
        # One entry per open ``do`` block; True when it is a development group.
        blocks: List[bool] = []
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            if line == "end":
                if not blocks:
                    raise ParseError(f"Invalid {filename}: unexpected end")
                blocks.pop()
                continue
            if _RUBY_BLOCK.search(line):
                blocks.append(line.startswith("group") and bool(_RUBY_DEV_GROUP.search(line)))
                continue
            if line.startswith("ruby "):
                has_engines = True
                continue
            match = _GEM.match(line)
            if match is None:
                continue
            dev = any(blocks) or ("group" in line and bool(_RUBY_DEV_GROUP.search(line)))
            target = dev_dependencies if dev else dependencies
            target[match.group(1)] = match.group(2) or ""
        if blocks:
            raise ParseError(f"Invalid {filename}: unterminated block")

        declared = {name.lower() for name in list(dependencies) + list(dev_dependencies)}
        return Manifest(
            ecosystem=self.name,
            filename=filename,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
            has_test=_mentions(declared, _RUBY_TEST_TOOLS),
            has_lint=_mentions(declared, _RUBY_LINT_TOOLS),
            has_build="rake" in declared,
            has_engines=has_engines,
        )


ECOSYSTEMS: Tuple[Ecosystem, ...] = (
    NpmEcosystem(),
    PythonEcosystem(),
    GoEcosystem(),
    RustEcosystem(),
    PhpEcosystem(),
    RubyEcosystem(),
)


def _string_mapping(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(name): str(spec) for name, spec in value.items()}


def _requirement_mapping(requirements: Iterable[Any]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for requirement in requirements:
        if not isinstance(requirement, str):
            continue
        name = _REQUIREMENT_SPLIT.split(requirement.strip(), 1)[0].strip()
        if not name or name.lower() == "python":
            continue
        mapping[name] = requirement.strip()[len(name):].strip()
    return mapping


def _poetry_spec(spec: Any) -> str:
    if isinstance(spec, dict):
        return str(spec.get("version", ""))
    return str(spec)


def _table_mapping(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(name): _poetry_spec(spec) for name, spec in value.items()}


def _is_composer_package(name: str) -> bool:
    # Platform requirements such as php or ext-json are not packages.
    return "/" in name


def _mentions(names: Iterable[str], tools: Iterable[str]) -> bool:
    names = set(names)
    return any(tool in names for tool in tools)


__all__ = [
    "ECOSYSTEMS",
    "Ecosystem",
    "GoEcosystem",
    "Manifest",
    "NpmEcosystem",
    "PhpEcosystem",
    "PythonEcosystem",
    "RubyEcosystem",
    "RustEcosystem",
]
