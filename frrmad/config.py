"""Loading of the daemon's YAML configuration."""

import os
from dataclasses import dataclass, field, fields

import yaml

CONFIG_LOCATION = "/etc/frr-mad/main.yaml"

# Configuration paths used by the other deployment profiles.
PROFILE_CONFIG_LOCATIONS = {
    "default": CONFIG_LOCATION,
    "dev": "/tmp/dev-config.yaml",
    "docker": "/app/config/main.yaml",
    "local": "../../local/dev-config.yaml",
}

CONFIG_ENV_VAR = "FRR_MAD_CONFFILE"


class ConfigError(Exception):
    """Raised when the configuration cannot be found or understood."""


@dataclass
class DefaultConfig:
    temp_files: str = ""
    log_path: str = ""
    debug_level: str = ""


@dataclass
class SocketConfig:
    unix_socket_location: str = ""
    unix_socket_name: str = ""
    socket_type: str = ""


@dataclass
class AggregatorConfig:
    frr_config_path: str = ""
    poll_interval: int = 0
    socket_path: str = ""


@dataclass
class ExporterConfig:
    port: int = 0
    ospf_router_data: bool = False
    ospf_network_data: bool = False
    ospf_summary_data: bool = False
    ospf_asbr_summary_data: bool = False
    ospf_external_data: bool = False
    ospf_nssa_external_data: bool = False
    ospf_database: bool = False
    ospf_neighbors: bool = False
    interface_list: bool = False
    route_list: bool = False


@dataclass
class Config:
    default: DefaultConfig = field(default_factory=DefaultConfig)
    socket: SocketConfig = field(default_factory=SocketConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    exporter: ExporterConfig = field(default_factory=ExporterConfig)


# YAML keys (matched case-insensitively) for every section field.
_SECTIONS = {
    "default": (DefaultConfig, {
        "tempfiles": "temp_files",
        "logpath": "log_path",
        "debuglevel": "debug_level",
    }),
    "socket": (SocketConfig, {
        "unixsocketlocation": "unix_socket_location",
        "unixsocketname": "unix_socket_name",
        "sockettype": "socket_type",
    }),
    "aggregator": (AggregatorConfig, {
        "frrconfigpath": "frr_config_path",
        "pollinterval": "poll_interval",
        "socketpath": "socket_path",
    }),
    "exporter": (ExporterConfig, {
        "port": "port",
        "ospfrouterdata": "ospf_router_data",
        "ospfnetworkdata": "ospf_network_data",
        "ospfsummarydata": "ospf_summary_data",
        "ospfasbrsummarydata": "ospf_asbr_summary_data",
        "ospfexternaldata": "ospf_external_data",
        "ospfnssaexternaldata": "ospf_nssa_external_data",
        "ospfdatabase": "ospf_database",
        "ospfneighbors": "ospf_neighbors",
        "interfacelist": "interface_list",
        "routelist": "route_list",
    }),
}

_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False", ""}


def load_config(overwrite_config_path=None):
    """Locate the configuration file and load its YAML counterpart.

    The environment variable FRR_MAD_CONFFILE wins over the given path,
    which wins over the built-in location.
    """
    location = CONFIG_LOCATION
    if overwrite_config_path:
        location = overwrite_config_path
    env_location = os.environ.get(CONFIG_ENV_VAR)
    if env_location is not None:
        location = env_location

    try:
        with open(location, "rb"):
            pass
    except OSError as exc:
        raise ConfigError(f"error opening file: {exc}") from exc

    return load_yaml_config(get_yaml_path(location))


def get_yaml_path(config_location):
    """Return the configuration path with its extension replaced by .yaml."""
    base, _ext = os.path.splitext(config_location)
    return base + ".yaml"


def load_yaml_config(yaml_path):
    """Read a YAML configuration file into a Config."""
    try:
        with open(yaml_path, encoding="utf-8") as handle:
            raw = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"error reading YAML config: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("error unmarshaling config: top level must be a mapping")

    top = _lower_keys(raw)
    sections = {}
    for section_name, (section_cls, key_map) in _SECTIONS.items():
        values = top.get(section_name)
        if values is None:
            sections[section_name] = section_cls()
            continue
        if not isinstance(values, dict):
            raise ConfigError(
                f"error unmarshaling config: section '{section_name}' must be a mapping"
            )
        sections[section_name] = _build_section(section_cls, key_map, _lower_keys(values))
    return Config(**sections)


def _lower_keys(mapping):
    return {str(key).lower(): value for key, value in mapping.items()}


def _build_section(section_cls, key_map, values):
    types = {f.name: f.type for f in fields(section_cls)}
    kwargs = {}
    for yaml_key, attr in key_map.items():
        if yaml_key in values:
            kwargs[attr] = _coerce(values[yaml_key], types[attr], yaml_key)
    return section_cls(**kwargs)


def _coerce(value, kind, key):
    if value is None:
        return kind()
    if isinstance(value, (dict, list)):
        raise ConfigError(f"error unmarshaling config: '{key}' must be a scalar")
    if kind is bool:
        return _to_bool(value, key)
    if kind is int:
        return _to_int(value, key)
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _to_bool(value, key):
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value)
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ConfigError(f"error unmarshaling config: '{key}' is not a boolean: {text!r}")


def _to_int(value, key):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    text = str(value).strip()
    if not text:
        return 0
    try:
        return int(text, 0)
    except ValueError as exc:
        raise ConfigError(
            f"error unmarshaling config: '{key}' is not an integer: {text!r}"
        ) from exc