from __future__ import annotations

from rawrgb.cfa.patterns import CFALayout
from rawrgb.config import AppConfig


_RULE = "=" * 78


def _cfa_label(layout: CFALayout) -> str:
    return "X-Trans" if layout is CFALayout.XTRANS else layout.value


def format_params(config: AppConfig) -> str:
    conv = config.conversion
    out = config.output
    rows = [
        ("Color filter array", _cfa_label(conv.cfa)),
        ("Bit depth", str(conv.bit_depth)),
        ("Darkness level", f"{conv.darkness_level:g}"),
        ("Saturation level", f"{conv.saturation_level:g}"),
        ("Demosaicking with interpolation", str(conv.interpolate).lower()),
        ("Output format", out.format.value),
        ("Save outputs to the disk", str(out.persist).lower()),
        ("Rename with capturing info", str(out.rename_with_info).lower()),
        ("Keep intermediate files", str(out.keep_intermediate).lower()),
        ("Filename suffix", out.suffix),
        ("Decoder", config.decoder),
        ("Workers", str(config.max_workers)),
    ]
    lines = ["Conversion parameters:", _RULE]
    lines.extend(f"{label + ':':<40}{value}" for label, value in rows)
    lines.append(_RULE)
    return "\n".join(lines)
