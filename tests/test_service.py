from __future__ import annotations

import logging
from pathlib import Path
import threading

import numpy as np
import pytest

from rawrgb import worker
from rawrgb.config import AppConfig, ConversionConfig, OutputConfig
from rawrgb.decode import DecodeError
from rawrgb.decode.types import CaptureInfo, RawFrame
from rawrgb.service import convert_batch, convert_file, expand_inputs


def _config(**output: object) -> AppConfig:
    return AppConfig(
        conversion=ConversionConfig(cfa="RGGB", bit_depth=8, darkness_level=0, saturation_level=255),
        output=OutputConfig(**output),
    )


class FakeDecoder:
    def __init__(self, value: int = 100, fail: set[str] | None = None, capture: CaptureInfo | None = None) -> None:
        self.value = value
        self.fail = fail or set()
        self.capture = capture
        self.calls: list[Path] = []
        self._lock = threading.Lock()

    def __call__(self, path: Path) -> RawFrame:
        with self._lock:
            self.calls.append(path)
        if path.name in self.fail:
            raise OSError(f"cannot open {path.name}")
        grid = np.full((4, 4), self.value, dtype=np.uint16)
        return RawFrame(grid=grid, bit_depth=8, source_path=path, capture=self.capture)


def _touch(folder: Path, *names: str) -> list[Path]:
    paths = []
    for name in names:
        p = folder / name
        p.write_bytes(b"raw")
        paths.append(p)
    return paths


def test_convert_file_returns_image_without_writing(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "IMG_0001.NEF")
    result = convert_file(_config(), src, decoder=FakeDecoder())

    assert result.output_path is None
    assert result.image.shape == (2, 2, 3)
    assert np.all(result.image == 25700)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["IMG_0001.NEF"]


def test_convert_file_with_format_persists_beside_source(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "IMG_0001.NEF")
    result = convert_file(_config(format="ppm", suffix="lin"), src, decoder=FakeDecoder())

    assert result.output_path == tmp_path / "IMG_0001_lin.ppm"
    assert result.output_path.exists()
    assert np.all(result.image == 25700)


def test_convert_file_persist_without_format_uses_raw_container(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "IMG_0001.NEF")
    result = convert_file(_config(persist=True, output_dir=tmp_path / "out"), src, decoder=FakeDecoder())
    assert result.output_path == tmp_path / "out" / "IMG_0001.npy"
    assert np.array_equal(np.load(result.output_path), result.image)


def test_convert_file_propagates_decode_failure(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "bad.NEF")
    with pytest.raises(DecodeError) as excinfo:
        convert_file(_config(), src, decoder=FakeDecoder(fail={"bad.NEF"}))
    assert isinstance(excinfo.value.__cause__, OSError)


def test_batch_persists_every_frame_and_returns_no_images(tmp_path: Path) -> None:
    paths = _touch(tmp_path, "a.NEF", "b.NEF", "c.NEF")
    report = convert_batch(_config(), paths, decoder=FakeDecoder())

    assert report.ok
    assert sorted(p.name for p in report.outputs) == ["a.npy", "b.npy", "c.npy"]
    assert not hasattr(report, "image")
    for out in report.outputs:
        assert np.all(np.load(out) == 25700)


def test_batch_continues_after_a_failing_frame(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    # A decode failure only drops that frame; the rest of the batch is still written.
    paths = _touch(tmp_path, "a.NEF", "b.NEF", "c.NEF")
    decoder = FakeDecoder(fail={"b.NEF"})
    with caplog.at_level(logging.ERROR):
        report = convert_batch(_config(format="tiff"), paths, decoder=decoder)

    assert len(decoder.calls) == 3
    assert sorted(p.name for p in report.outputs) == ["a.tiff", "c.tiff"]
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert failure.source_path.name == "b.NEF"
    assert failure.error_type == "DecodeError"
    assert "cannot open b.NEF" in failure.error
    assert not (tmp_path / "b.tiff").exists()
    assert "b.NEF" in caplog.text
    assert any(record.exc_info for record in caplog.records if record.levelno == logging.ERROR)


def test_batch_runs_on_a_worker_pool(tmp_path: Path) -> None:
    paths = _touch(tmp_path, *(f"f{i}.NEF" for i in range(6)))
    cfg = _config(format="ppm")
    cfg.max_workers = 3
    report = convert_batch(cfg, paths, decoder=FakeDecoder())
    assert len(report.outputs) == 6


def test_batch_cancel_before_start_processes_nothing(tmp_path: Path) -> None:
    paths = _touch(tmp_path, "a.NEF", "b.NEF")
    cancel = threading.Event()
    cancel.set()
    decoder = FakeDecoder()
    report = convert_batch(_config(), paths, decoder=decoder, cancel_event=cancel)

    assert decoder.calls == []
    assert report.cancelled
    assert report.skipped == paths
    assert report.outputs == []


def test_batch_cancel_mid_run_keeps_finished_frames(tmp_path: Path) -> None:
    paths = _touch(tmp_path, "a.NEF", "b.NEF", "c.NEF")
    cancel = threading.Event()

    class CancellingDecoder(FakeDecoder):
        def __call__(self, path: Path) -> RawFrame:
            frame = super().__call__(path)
            cancel.set()
            return frame

    report = convert_batch(_config(), paths, decoder=CancellingDecoder(), cancel_event=cancel)
    assert [p.name for p in report.outputs] == ["a.npy"]
    assert (tmp_path / "a.npy").exists()
    assert [p.name for p in report.skipped] == ["b.NEF", "c.NEF"]


def test_rename_with_info_uses_capture_metadata(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "DSC_0042.ARW")
    capture = CaptureInfo(exposure_s=0.02, f_number=5.6, iso=400.0, timestamp="2019:01:15 10:20:30")
    result = convert_file(
        _config(format="ppm", rename_with_info=True, suffix="x"),
        src,
        decoder=FakeDecoder(capture=capture),
    )
    assert result.output_path is not None
    assert result.output_path.name == "DSC_0042_EXP20_F5.6_ISO400_20190115_102030_x.ppm"


def test_missing_metadata_keeps_plain_name_and_warns(
    tmp_path: Path, monkeypatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setattr(worker, "extract_capture_info", lambda path, known=None: known or CaptureInfo())
    (src,) = _touch(tmp_path, "DSC_0042.ARW")
    with caplog.at_level(logging.WARNING):
        result = convert_file(_config(format="ppm", rename_with_info=True), src, decoder=FakeDecoder())
    assert result.output_path == tmp_path / "DSC_0042.ppm"
    assert "can not extract capturing info" in caplog.text


def test_expand_inputs_glob_and_missing(tmp_path: Path) -> None:
    _touch(tmp_path, "b.NEF", "a.NEF", "notes.txt")
    found = expand_inputs(tmp_path / "*.NEF")
    assert [p.name for p in found] == ["a.NEF", "b.NEF"]
    assert expand_inputs(tmp_path / "notes.txt") == [(tmp_path / "notes.txt").resolve()]
    with pytest.raises(FileNotFoundError):
        expand_inputs(tmp_path / "*.CR2")


def test_batch_same_stem_into_one_folder_does_not_overwrite(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    (tmp_path / "day1").mkdir()
    (tmp_path / "day2").mkdir()
    (first,) = _touch(tmp_path / "day1", "IMG_0001.NEF")
    (second,) = _touch(tmp_path / "day2", "IMG_0001.NEF")
    out_dir = tmp_path / "out"

    with caplog.at_level(logging.ERROR):
        report = convert_batch(_config(output_dir=out_dir), [first, second], decoder=FakeDecoder())

    assert report.outputs == [out_dir / "IMG_0001.npy"]
    assert len(report.failures) == 1
    assert report.failures[0].source_path == second
    assert report.failures[0].error_type == "OutputCollision"
    assert not report.ok
    assert [p.name for p in out_dir.iterdir()] == ["IMG_0001.npy"]
    assert "IMG_0001" in caplog.text


def test_convert_file_returns_capture_info_when_asked(tmp_path: Path) -> None:
    (src,) = _touch(tmp_path, "DSC_0042.ARW")
    capture = CaptureInfo(exposure_s=0.02, f_number=5.6, iso=400.0, timestamp="2019:01:15 10:20:30")

    result = convert_file(_config(), src, decoder=FakeDecoder(capture=capture), with_capture=True)
    assert result.capture == capture
    assert result.output_path is None

    plain = convert_file(_config(), src, decoder=FakeDecoder(capture=capture))
    assert plain.capture is None


def test_convert_file_capture_info_unavailable_is_not_an_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(worker, "extract_capture_info", lambda path, known=None: known or CaptureInfo())
    (src,) = _touch(tmp_path, "frame.pgm")

    result = convert_file(_config(), src, decoder=FakeDecoder(), with_capture=True)
    assert result.capture == CaptureInfo()
    assert not result.capture.complete
    assert np.all(result.image == 25700)
