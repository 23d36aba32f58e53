"""Reading, interpreting and updating the .talismanrc configuration file."""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import yaml

from talisman.gitrepo import Addition
from talisman.utility import safe_read_file

log = logging.getLogger(__name__)

DEFAULT_RC_VERSION = "1.0"
DEFAULT_RC_FILE_NAME = ".talismanrc"

KNOWN_SCOPES: dict[str, tuple[str, ...]] = {
    "node": ("pnpm-lock.yaml", "yarn.lock", "package-lock.json", "node_modules/"),
    "go": ("makefile", "go.mod", "go.sum", "Gopkg.toml", "Gopkg.lock", "glide.yaml", "glide.lock"),
    "images": ("*.jpeg", "*.jpg", "*.png", "*.tiff", "*.bmp"),
    "bazel": ("*.bzl",),
    "terraform": (".terraform.lock.hcl",),
    "php": ("composer.lock",),
    "python": ("poetry.lock", "Pipfile.lock", "requirements.txt"),
}

_EMPTY_STRING = re.compile(r"^\s*$")

FileReader = Callable[[str], bytes]


class Mode(enum.IntEnum):
    """The mode Talisman runs in."""

    HOOK = 1
    SCAN = 2


def _is_empty_string(text: str) -> bool:
    return _EMPTY_STRING.match(text) is not None


@dataclass
class CustomSeverityConfig:
    """A severity given to one detector."""

    detector: str
    severity: str


@dataclass
class ScopeConfig:
    """A named group of files to leave out of scanning."""

    scope_name: str


@dataclass
class ExperimentalConfig:
    """Settings for experimental features."""

    base64_entropy_threshold: float = 0.0


@dataclass
class FileIgnoreConfig:
    """Ignore rules for one file or pattern."""

    file_name: str
    checksum: str = ""
    ignore_detectors: list[str] = field(default_factory=list)
    allowed_patterns: list[str] = field(default_factory=list)
    _compiled: tuple[tuple[str, ...], list[re.Pattern[str]]] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def is_effective(self, detector_name: str) -> bool:
        """Tell whether this entry switches off the named detector."""
        return not _is_empty_string(self.file_name) and detector_name in self.ignore_detectors

    def checksum_matches(self, incoming_checksum: str) -> bool:
        return self.checksum == incoming_checksum

    def get_allowed_patterns(self) -> list[re.Pattern[str]]:
        """Return the allowed patterns compiled, compiling them once."""
        key = tuple(self.allowed_patterns)
        if self._compiled is None or self._compiled[0] != key:
            self._compiled = (key, [re.compile(p) for p in key])
        return self._compiled[1]

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"filename": self.file_name}
        if self.checksum:
            result["checksum"] = self.checksum
        if self.ignore_detectors:
            result["ignore_detectors"] = list(self.ignore_detectors)
        if self.allowed_patterns:
            result["allowed_patterns"] = list(self.allowed_patterns)
        return result


class _RCDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    tag = "tag:yaml.org,2002:str"
    if dumper.resolve(yaml.ScalarNode, data, (True, False)) != tag:
        return dumper.represent_scalar(tag, data, style='"')
    return dumper.represent_scalar(tag, data)


_RCDumper.add_representer(str, _represent_str)


def _dump(document: dict[str, Any]) -> str:
    return yaml.dump(
        document,
        Dumper=_RCDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def _default_repo_file_reader(path: str) -> bytes:
    try:
        return safe_read_file(path)
    except OSError:
        return b""


@dataclass
class _Settings:
    rc_file_name: str = DEFAULT_RC_FILE_NAME
    repo_file_reader: FileReader = _default_repo_file_reader


_settings = _Settings()


@dataclass
class PersistedRC:
    """The contents of a .talismanrc file as stored on disk."""

    file_ignore_config: list[FileIgnoreConfig] = field(default_factory=list)
    scope_config: list[ScopeConfig] = field(default_factory=list)
    custom_patterns: list[str] = field(default_factory=list)
    custom_severities: list[CustomSeverityConfig] = field(default_factory=list)
    allowed_patterns: list[str] = field(default_factory=list)
    experimental: ExperimentalConfig = field(default_factory=ExperimentalConfig)
    threshold: str = ""
    scan_config: dict[str, list[FileIgnoreConfig]] = field(default_factory=dict)
    version: str = ""

    def to_yaml(self) -> str:
        """Render the configuration as YAML, leaving out empty settings."""
        document: dict[str, Any] = {}
        if self.file_ignore_config:
            document["fileignoreconfig"] = [c._to_dict() for c in self.file_ignore_config]
        if self.scope_config:
            document["scopeconfig"] = [{"scope": s.scope_name} for s in self.scope_config]
        if self.custom_patterns:
            document["custom_patterns"] = list(self.custom_patterns)
        if self.custom_severities:
            document["custom_severities"] = [
                {"detector": s.detector, "severity": s.severity} for s in self.custom_severities
            ]
        if self.allowed_patterns:
            document["allowed_patterns"] = list(self.allowed_patterns)
        if self.experimental.base64_entropy_threshold:
            document["experimental"] = {
                "base64EntropyThreshold": self.experimental.base64_entropy_threshold
            }
        if self.threshold:
            document["threshold"] = self.threshold
        if self.scan_config:
            document["scanconfig"] = {
                commit: [c._to_dict() for c in configs]
                for commit, configs in self.scan_config.items()
            }
        document["version"] = self.version
        return _dump(document)

    def add_ignores(self, mode: Mode, entries_to_add: Sequence[FileIgnoreConfig]) -> None:
        """Merge ignore entries into the rc file on disk and rewrite it."""
        if not entries_to_add:
            return
        log.debug("Adding entries: %s", entries_to_add)
        config = config_from_file()
        if mode == Mode.HOOK:
            incoming = [e for e in entries_to_add if isinstance(e, FileIgnoreConfig)]
            config.file_ignore_config = _combine_file_ignores(config.file_ignore_config, incoming)
        contents = config.to_yaml()
        log.debug("Writing talismanrc: %s", contents)
        with open(_settings.rc_file_name, "w", encoding="utf-8") as handle:
            handle.write(contents)


def _combine_file_ignores(
    existing: Iterable[FileIgnoreConfig], incoming: Iterable[FileIgnoreConfig]
) -> list[FileIgnoreConfig]:
    merged: dict[str, FileIgnoreConfig] = {}
    for config in (*existing, *incoming):
        merged[config.file_name] = config
    return [merged[name] for name in sorted(merged)]


@dataclass
class TalismanRC:
    """The effective configuration used while checking additions."""

    ignore_configs: list[FileIgnoreConfig] = field(default_factory=list)
    scope_config: list[ScopeConfig] = field(default_factory=list)
    custom_patterns: list[str] = field(default_factory=list)
    custom_severities: list[CustomSeverityConfig] = field(default_factory=list)
    allowed_patterns: list[re.Pattern[str]] = field(default_factory=list)
    experimental: ExperimentalConfig = field(default_factory=ExperimentalConfig)
    threshold: str = ""
    base: PersistedRC | None = None

    def accepts_all(self) -> bool:
        """Tell whether no ignore rules are configured."""
        return not self._effective_rules("any-detector")

    def accept(self, addition: Addition, detector_name: str) -> bool:
        return not self.deny(addition, detector_name)

    def deny(self, addition: Addition, detector_name: str) -> bool:
        """Tell whether the addition is to be skipped by the named detector."""
        return any(addition.matches(p) for p in self._effective_rules(detector_name))

    def filter_additions(self, additions: Iterable[Addition]) -> list[Addition]:
        """Drop additions that belong to one of the configured scopes."""
        patterns = [
            pattern
            for scope in self.scope_config
            for pattern in KNOWN_SCOPES.get(scope.scope_name, ())
        ]
        return [a for a in additions if not any(a.matches(p) for p in patterns)]

    def filter_allowed_patterns_from_addition(self, addition: Addition) -> str:
        """Return the addition's contents with all allowed patterns removed."""
        text = addition.data.decode("utf-8", errors="surrogateescape")
        for pattern in self.allowed_patterns:
            text = pattern.sub("", text)
        for config in self.ignore_configs:
            if config.file_name == addition.path:
                for pattern in config.get_allowed_patterns():
                    text = pattern.sub("", text)
        return text

    def _effective_rules(self, detector_name: str) -> list[str]:
        return [c.file_name for c in self.ignore_configs if c.is_effective(detector_name)]


def suggest_rc_for(configs: Iterable[object]) -> str:
    """Return rc file content holding the given file ignore entries."""
    file_configs = []
    for config in configs:
        if isinstance(config, FileIgnoreConfig):
            file_configs.append(config)
        else:
            log.debug("Ignoring unknown IgnoreConfig : %r", config)
    return PersistedRC(file_ignore_config=file_configs).to_yaml()


def _scalar(value: Any, what: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{what} must be a scalar value")
    return value


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if value is None or value == "":
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping")
    return value


def _sequence(value: Any, what: str) -> list[Any]:
    if value is None or value == "":
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list")
    return value


def _strings(value: Any, what: str) -> list[str]:
    return [_scalar(item, what) for item in _sequence(value, what)]


def _file_ignore_from(raw: Any) -> FileIgnoreConfig:
    entry = _mapping(raw, "fileignoreconfig entry")
    return FileIgnoreConfig(
        file_name=_scalar(entry.get("filename"), "filename"),
        checksum=_scalar(entry.get("checksum"), "checksum"),
        ignore_detectors=_strings(entry.get("ignore_detectors"), "ignore_detectors"),
        allowed_patterns=_strings(entry.get("allowed_patterns"), "allowed_patterns"),
    )


def _parse(document: Any) -> PersistedRC:
    top = _mapping(document, ".talismanrc")
    experimental = _mapping(top.get("experimental"), "experimental")
    threshold_text = _scalar(experimental.get("base64EntropyThreshold"), "base64EntropyThreshold")
    try:
        entropy = float(threshold_text) if threshold_text else 0.0
    except ValueError:
        raise ValueError(f"base64EntropyThreshold {threshold_text!r} is not a number") from None
    return PersistedRC(
        file_ignore_config=[
            _file_ignore_from(e) for e in _sequence(top.get("fileignoreconfig"), "fileignoreconfig")
        ],
        scope_config=[
            ScopeConfig(_scalar(_mapping(e, "scopeconfig entry").get("scope"), "scope"))
            for e in _sequence(top.get("scopeconfig"), "scopeconfig")
        ],
        custom_patterns=_strings(top.get("custom_patterns"), "custom_patterns"),
        custom_severities=[
            CustomSeverityConfig(
                detector=_scalar(_mapping(e, "custom_severities entry").get("detector"), "detector"),
                severity=_scalar(_mapping(e, "custom_severities entry").get("severity"), "severity"),
            )
            for e in _sequence(top.get("custom_severities"), "custom_severities")
        ],
        allowed_patterns=_strings(top.get("allowed_patterns"), "allowed_patterns"),
        experimental=ExperimentalConfig(base64_entropy_threshold=entropy),
        threshold=_scalar(top.get("threshold"), "threshold"),
        scan_config={
            _scalar(commit, "scanconfig commit"): [
                _file_ignore_from(e) for e in _sequence(entries, "scanconfig entries")
            ]
            for commit, entries in _mapping(top.get("scanconfig"), "scanconfig").items()
        },
        version=_scalar(top.get("version"), "version"),
    )


def new_persisted_rc(file_contents: bytes | str) -> PersistedRC:
    """Parse rc file contents; raise ValueError when they are not valid."""
    text = (
        file_contents.decode("utf-8", errors="replace")
        if isinstance(file_contents, bytes)
        else file_contents
    )
    try:
        persisted = _parse(yaml.load(text, Loader=yaml.BaseLoader))
    except (yaml.YAMLError, ValueError) as exc:
        log.error("Unable to parse .talismanrc : %s", exc)
        print(
            f"\n\x1b[1m\x1b[31mUnable to parse .talismanrc {exc}. "
            "Please ensure it is following the right YAML structure\x1b[0m\x1b[0m\n"
        )
        raise ValueError(f"unable to parse .talismanrc: {exc}") from exc
    if not persisted.version:
        persisted.version = DEFAULT_RC_VERSION
    return persisted


def set_rc_filename(rc_file_name: str) -> None:
    """Use another file as the rc file."""
    _settings.rc_file_name = rc_file_name


def set_repo_file_reader(reader: FileReader | None) -> None:
    """Read the rc file through reader; None restores reading from disk."""
    _settings.repo_file_reader = reader if reader is not None else _default_repo_file_reader


def read_config_from_rc_file(file_reader: FileReader) -> PersistedRC:
    """Read and parse the rc file through file_reader."""
    return new_persisted_rc(file_reader(_settings.rc_file_name))


def config_from_file() -> PersistedRC:
    """Read and parse the current rc file; a missing file gives defaults."""
    return read_config_from_rc_file(_settings.repo_file_reader)


def make_with_file_ignores(file_ignore_configs: Iterable[FileIgnoreConfig]) -> PersistedRC:
    return PersistedRC(file_ignore_config=list(file_ignore_configs), version=DEFAULT_RC_VERSION)


def build_ignore_config(
    mode: Mode, filepath: str, checksum: str, detectors: Iterable[str] | None
) -> FileIgnoreConfig:
    """Build the ignore entry suggested for a file in the given mode."""
    Mode(mode)
    return FileIgnoreConfig(
        file_name=filepath, checksum=checksum, ignore_detectors=list(detectors or [])
    )


def from_persisted_rc(persisted: PersistedRC, mode: Mode) -> TalismanRC:
    """Build the effective configuration; file ignores apply only in hook mode."""
    return TalismanRC(
        ignore_configs=list(persisted.file_ignore_config) if mode == Mode.HOOK else [],
        scope_config=persisted.scope_config,
        custom_patterns=persisted.custom_patterns,
        custom_severities=persisted.custom_severities,
        allowed_patterns=[re.compile(p) for p in persisted.allowed_patterns],
        experimental=persisted.experimental,
        threshold=persisted.threshold,
        base=persisted,
    )


def for_mode(mode: Mode) -> TalismanRC:
    """Load the rc file and build the configuration for a mode."""
    return from_persisted_rc(config_from_file(), mode)


def for_scan(ignore_history: bool) -> TalismanRC:
    return for_mode(Mode.HOOK if ignore_history else Mode.SCAN)