"""Loading and validation of the packaged controller profile and user settings."""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from irctl.core.errors import ConfigError, ProfileValidationError
from irctl.core.model import ControllerProfile, PreferenceKey, Settings

DEFAULT_PROFILE = "apple_ir"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# YAML 1.1 would turn on/off/yes/no into booleans; keep them as strings.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator(name: str) -> Any:
    schema_text = resources.files("irctl.schemas").joinpath(name).read_text(encoding="utf-8")
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _validate(doc: dict[str, Any], schema_name: str, source: Path | Traversable, error_cls: type[ConfigError]) -> None:
    validator = _load_schema_validator(schema_name)
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise error_cls(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def _normalize_bool(value: Any, *, context: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ConfigError(f"{context} must be boolean true/false")


def settings_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "irctl/config.yaml"


@lru_cache(maxsize=None)
def load_profile(profile_id: str = DEFAULT_PROFILE) -> ControllerProfile:
    """Load the packaged controller identifiers.

    The profile is immutable for the lifetime of the process, so it is parsed
    once and shared by every component that needs it.
    """
    path = resources.files("irctl.profiles").joinpath(f"{profile_id}.yaml")
    if not path.is_file():
        raise ProfileValidationError(f"Unknown controller profile '{profile_id}'")

    try:
        doc = _read_yaml(path)
    except ConfigError as exc:
        raise ProfileValidationError(str(exc)) from exc
    _validate(doc, "profile.schema.json", path, ProfileValidationError)

    if doc["id"] != profile_id:
        raise ProfileValidationError(
            f"Profile file {path} declares id '{doc['id']}', expected '{profile_id}'"
        )

    preference = doc["preference"]
    return ControllerProfile(
        id=doc["id"],
        name=doc["name"],
        preference=PreferenceKey(
            domain=preference["domain"],
            key=preference["key"],
            user=preference.get("user", "any"),
            host=preference.get("host", "current"),
        ),
        registry_class=doc["registry"]["class_name"],
        registry_property=doc["registry"]["property"],
        capability_marker=doc["hid"]["capability_marker"],
    )


def _env_verbose() -> bool | None:
    raw = os.environ.get("IRCTL_VERBOSE")
    if not raw:
        return None
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def load_settings() -> Settings:
    """Read user settings; `IRCTL_VERBOSE` overrides the file's `verbose`."""
    path = settings_path()
    doc: dict[str, Any] = {}
    if path.is_file():
        doc = _read_yaml(path)
        _validate(doc, "settings.schema.json", path, ConfigError)

    verbose = _normalize_bool(doc.get("verbose", False), context=f"{path}: verbose")
    env_verbose = _env_verbose()
    if env_verbose is not None:
        verbose = env_verbose
    return Settings(verbose=verbose, format=doc.get("format", "text"))
