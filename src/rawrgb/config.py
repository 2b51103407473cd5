from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from rawrgb.cfa.patterns import CFALayout, get_layout
from rawrgb.errors import ConfigError


DEFAULT_BIT_DEPTH = 14
MAX_BIT_DEPTH = 16
DECODERS = ("libraw", "dcraw", "pgm")


class OutputFormat(str, Enum):
    NPY = "npy"
    PPM = "ppm"
    TIFF = "tiff"
    PNG = "png"
    NONE = "none"

    @property
    def extension(self) -> str:
        return f".{self.value}"


_FORMAT_ALIASES = {
    "raw-container": OutputFormat.NPY,
    "mat": OutputFormat.NPY,
    "portable-pixmap": OutputFormat.PPM,
    "tagged-image": OutputFormat.TIFF,
    "tif": OutputFormat.TIFF,
    "portable-network-graphic": OutputFormat.PNG,
    "n/a": OutputFormat.NONE,
    "": OutputFormat.NONE,
}


def parse_format(value: str | OutputFormat | None) -> OutputFormat:
    if value is None:
        return OutputFormat.NONE
    if isinstance(value, OutputFormat):
        return value
    key = str(value).strip().lower()
    if key in _FORMAT_ALIASES:
        return _FORMAT_ALIASES[key]
    try:
        return OutputFormat(key)
    except ValueError:
        valid = ", ".join(fmt.value for fmt in OutputFormat)
        raise ConfigError(f"unknown output format {value!r}; expected one of: {valid}") from None


def max_value_for_bit_depth(bit_depth: int) -> int:
    return 2 ** int(bit_depth) - 1


def resolve_saturation_level(
    bit_depth: int,
    saturation_level: float | None,
    darkness_level: float = 0.0,
) -> float:
    """Default the saturation level to 2^bit_depth - 1 and validate it."""
    ceiling = max_value_for_bit_depth(bit_depth)
    if saturation_level is None:
        saturation = float(ceiling)
    else:
        saturation = float(saturation_level)
        if saturation > ceiling:
            raise ConfigError(
                f"saturation level {saturation:.0f} is greater than the valid maximum value "
                f"{ceiling} (2^{bit_depth}-1)"
            )
    if saturation <= float(darkness_level):
        raise ConfigError(
            f"saturation level {saturation:.0f} must be greater than darkness level {darkness_level}"
        )
    return saturation


@dataclass
class ConversionConfig:
    cfa: CFALayout = CFALayout.RGGB
    bit_depth: int = DEFAULT_BIT_DEPTH
    darkness_level: float = 0.0
    saturation_level: float | None = None
    interpolate: bool = False

    def __post_init__(self) -> None:
        self.cfa = get_layout(self.cfa)
        if isinstance(self.bit_depth, bool) or int(self.bit_depth) != self.bit_depth:
            raise ConfigError(f"bit depth must be an integer, got {self.bit_depth!r}")
        self.bit_depth = int(self.bit_depth)
        if not 1 <= self.bit_depth <= MAX_BIT_DEPTH:
            raise ConfigError(f"bit depth must be between 1 and {MAX_BIT_DEPTH}, got {self.bit_depth}")
        self.darkness_level = float(self.darkness_level)
        if self.darkness_level < 0:
            raise ConfigError(f"darkness level must be non-negative, got {self.darkness_level}")
        self.saturation_level = resolve_saturation_level(
            self.bit_depth, self.saturation_level, self.darkness_level
        )
        self.interpolate = bool(self.interpolate)


@dataclass
class OutputConfig:
    format: OutputFormat = OutputFormat.NONE
    suffix: str = ""
    keep_intermediate: bool = False
    rename_with_info: bool = False
    persist: bool = False
    output_dir: Path | None = None

    def __post_init__(self) -> None:
        self.format = parse_format(self.format)
        self.suffix = str(self.suffix or "")


@dataclass
class AppConfig:
    conversion: ConversionConfig = field(default_factory=ConversionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    decoder: str = "libraw"
    max_workers: int = 1
    verbose: bool = False
    log_level: str = "INFO"
    log_file: Path | None = None

    def __post_init__(self) -> None:
        self.decoder = str(self.decoder).lower()
        if self.decoder not in DECODERS:
            raise ConfigError(f"unknown decoder {self.decoder!r}; expected one of: {', '.join(DECODERS)}")
        if int(self.max_workers) < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        self.max_workers = int(self.max_workers)


def resolve_output_policy(output: OutputConfig, batch: bool) -> OutputConfig:
    """Apply the persistence rules to an output config.

    An explicit format, or batch processing, forces persistence. Persisting without
    a format falls back to the raw container.
    """
    persist = output.persist or batch or output.format is not OutputFormat.NONE
    fmt = output.format
    if persist and fmt is OutputFormat.NONE:
        fmt = OutputFormat.NPY
    return replace(output, persist=persist, format=fmt)


_CONVERSION_KEYS = {
    "cfa": "cfa",
    "bit_depth": "bit_depth",
    "bitDepth": "bit_depth",
    "bit": "bit_depth",
    "darkness_level": "darkness_level",
    "darknessLevel": "darkness_level",
    "darkness": "darkness_level",
    "saturation_level": "saturation_level",
    "saturationLevel": "saturation_level",
    "saturation": "saturation_level",
    "interpolate": "interpolate",
    "interpolation": "interpolate",
}

_OUTPUT_KEYS = {
    "format": "format",
    "suffix": "suffix",
    "keep_intermediate": "keep_intermediate",
    "keepIntermediate": "keep_intermediate",
    "rename_with_info": "rename_with_info",
    "rename-with-info": "rename_with_info",
    "renameWithInfo": "rename_with_info",
    "persist": "persist",
    "output_dir": "output_dir",
}


def _pick(data: Mapping[str, Any], keys: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in data.items():
        target = keys.get(key)
        if target is None or value is None:
            continue
        if target in out:
            raise ConfigError(f"conflicting config keys for {target}")
        out[target] = value
    return out


def _expand_path(value: str | Path | None, base: Path) -> Path | None:
    if value in (None, ""):
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base / path).resolve()
    return path


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"{key} must be true or false, got {value!r}")


def conversion_config_from_mapping(data: Mapping[str, Any]) -> ConversionConfig:
    kwargs = _pick(data, _CONVERSION_KEYS)
    if "interpolate" in kwargs:
        kwargs["interpolate"] = _as_bool("interpolate", kwargs["interpolate"])
    try:
        return ConversionConfig(**kwargs)
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"invalid conversion config: {exc}") from exc


def output_config_from_mapping(data: Mapping[str, Any], base: Path | None = None) -> OutputConfig:
    kwargs = _pick(data, _OUTPUT_KEYS)
    for key in ("keep_intermediate", "rename_with_info", "persist"):
        if key in kwargs:
            kwargs[key] = _as_bool(key, kwargs[key])
    if "output_dir" in kwargs:
        kwargs["output_dir"] = _expand_path(kwargs["output_dir"], base or Path.cwd())
    return OutputConfig(**kwargs)


def canonical_mapping(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Fold a sectioned or flat config mapping into canonical snake_case sections.

    Conversion and output keys may sit under ``conversion:``/``output:`` or at the
    top level, spelled in snake_case, camelCase or kebab-case. Section values win.
    """
    out = {k: v for k, v in raw.items() if k not in _CONVERSION_KEYS and k not in _OUTPUT_KEYS}
    out["conversion"] = {
        **_pick(_subset(raw, _CONVERSION_KEYS), _CONVERSION_KEYS),
        **_pick(dict(raw.get("conversion") or {}), _CONVERSION_KEYS),
    }
    out["output"] = {
        **_pick(_subset(raw, _OUTPUT_KEYS), _OUTPUT_KEYS),
        **_pick(dict(raw.get("output") or {}), _OUTPUT_KEYS),
    }
    return out


def app_config_from_mapping(raw: Mapping[str, Any], base: Path | None = None) -> AppConfig:
    base = base or Path.cwd()
    raw = canonical_mapping(raw)

    return AppConfig(
        conversion=conversion_config_from_mapping(raw["conversion"]),
        output=output_config_from_mapping(raw["output"], base),
        decoder=str(raw.get("decoder", "libraw")),
        max_workers=int(raw.get("max_workers", 1)),
        verbose=_as_bool("verbose", raw.get("verbose", False)),
        log_level=str(raw.get("log_level", "INFO")),
        log_file=_expand_path(raw.get("log_file"), base),
    )


def _subset(data: Mapping[str, Any], keys: Mapping[str, str]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k in keys}


def load_config_mapping(path: str | Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:
        raise RuntimeError("PyYAML is required for config loading. Install with: pip install PyYAML") from exc

    cfg_path = Path(path).expanduser().resolve()
    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {cfg_path} must contain a mapping")

    return raw


def load_config(path: str | Path) -> AppConfig:
    cfg_path = Path(path).expanduser().resolve()
    return app_config_from_mapping(load_config_mapping(cfg_path), base=cfg_path.parent)
