from __future__ import annotations

from pathlib import Path

import pytest

from rawrgb.cfa.patterns import CFALayout
from rawrgb.config import (
    AppConfig,
    ConversionConfig,
    OutputConfig,
    OutputFormat,
    app_config_from_mapping,
    load_config,
    parse_format,
    resolve_output_policy,
    resolve_saturation_level,
)
from rawrgb.errors import ConfigError, InvalidLayout


def test_saturation_defaults_from_bit_depth() -> None:
    assert resolve_saturation_level(14, None) == 16383.0
    assert resolve_saturation_level(8, None) == 255.0
    assert ConversionConfig().saturation_level == 16383.0
    assert ConversionConfig(bit_depth=12).saturation_level == 4095.0


def test_saturation_above_bit_depth_ceiling_is_rejected() -> None:
    with pytest.raises(ConfigError, match="greater than the valid maximum"):
        ConversionConfig(bit_depth=8, saturation_level=256)


def test_saturation_must_exceed_darkness() -> None:
    with pytest.raises(ConfigError):
        ConversionConfig(bit_depth=8, darkness_level=200, saturation_level=200)


def test_unknown_cfa_is_rejected_at_configuration() -> None:
    with pytest.raises(InvalidLayout):
        ConversionConfig(cfa="FOO")


@pytest.mark.parametrize("bit_depth", [0, 17, 2.5, True])
def test_bad_bit_depth_is_rejected(bit_depth: object) -> None:
    with pytest.raises(ConfigError):
        ConversionConfig(bit_depth=bit_depth)  # type: ignore[arg-type]


def test_negative_darkness_is_rejected() -> None:
    with pytest.raises(ConfigError):
        ConversionConfig(darkness_level=-1)


def test_mapping_accepts_spec_style_keys(tmp_path: Path) -> None:
    cfg = app_config_from_mapping(
        {
            "cfa": "XTrans",
            "bitDepth": 12,
            "darknessLevel": 256,
            "saturationLevel": 4000,
            "interpolate": True,
            "format": "tagged-image",
            "suffix": "v2",
            "keepIntermediate": True,
            "rename-with-info": True,
            "persist": True,
            "verbose": True,
        },
        base=tmp_path,
    )
    assert cfg.conversion.cfa is CFALayout.XTRANS
    assert cfg.conversion.bit_depth == 12
    assert cfg.conversion.darkness_level == 256.0
    assert cfg.conversion.saturation_level == 4000.0
    assert cfg.conversion.interpolate is True
    assert cfg.output.format is OutputFormat.TIFF
    assert cfg.output.suffix == "v2"
    assert cfg.output.keep_intermediate is True
    assert cfg.output.rename_with_info is True
    assert cfg.output.persist is True
    assert cfg.verbose is True


def test_mapping_rejects_conflicting_aliases() -> None:
    with pytest.raises(ConfigError):
        app_config_from_mapping({"bitDepth": 12, "bit_depth": 14})


def test_mapping_rejects_non_boolean_flags() -> None:
    with pytest.raises(ConfigError):
        app_config_from_mapping({"interpolate": "yes"})


def test_load_config_sections_and_relative_paths(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        """
conversion:
  cfa: BGGR
  bit_depth: 14
  darkness_level: 512
output:
  format: ppm
  output_dir: ./out
decoder: dcraw
max_workers: 3
log_file: ./logs/run.log
""",
        encoding="utf-8",
    )

    cfg = load_config(cfg_file)
    assert cfg.conversion.cfa is CFALayout.BGGR
    assert cfg.conversion.saturation_level == 16383.0
    assert cfg.output.format is OutputFormat.PPM
    assert cfg.output.output_dir == (tmp_path / "out").resolve()
    assert cfg.decoder == "dcraw"
    assert cfg.max_workers == 3
    assert cfg.log_file == (tmp_path / "logs" / "run.log").resolve()


def test_load_config_rejects_saturation_before_any_work(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("conversion:\n  bit_depth: 8\n  saturation_level: 300\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg_file)


def test_unknown_decoder_and_workers_are_rejected() -> None:
    with pytest.raises(ConfigError):
        AppConfig(decoder="magic")
    with pytest.raises(ConfigError):
        AppConfig(max_workers=0)


def test_parse_format_aliases() -> None:
    assert parse_format("raw-container") is OutputFormat.NPY
    assert parse_format("portable-pixmap") is OutputFormat.PPM
    assert parse_format("TIF") is OutputFormat.TIFF
    assert parse_format("portable-network-graphic") is OutputFormat.PNG
    assert parse_format(None) is OutputFormat.NONE
    with pytest.raises(ConfigError):
        parse_format("jpeg")


def test_output_policy_rules() -> None:
    plain = resolve_output_policy(OutputConfig(), batch=False)
    assert plain.persist is False
    assert plain.format is OutputFormat.NONE

    with_format = resolve_output_policy(OutputConfig(format="png"), batch=False)
    assert with_format.persist is True
    assert with_format.format is OutputFormat.PNG

    persisted = resolve_output_policy(OutputConfig(persist=True), batch=False)
    assert persisted.format is OutputFormat.NPY

    batch = resolve_output_policy(OutputConfig(persist=False), batch=True)
    assert batch.persist is True
    assert batch.format is OutputFormat.NPY
