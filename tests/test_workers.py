"""
Tests for the worker threads.

Run with: python -m pytest tests/test_workers.py -v
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image

from PyQt6.QtCore import QCoreApplication, QEventLoop, QTimer

from eraser.core import ForceMode, MaskSet, OpacityMask, PixelBuffer, UnblendConfig
from eraser.workers import (
    MaskLoadWorker, UnblendWorker, BatchRemoveWorker, BatchRemoveConfig,
    RemoveResult, clean_filename
)

# Global QCoreApplication instance
_app = None


def get_app():
    """Get or create QCoreApplication instance."""
    global _app
    if _app is None:
        _app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    return _app


def run_until(worker, signal, timeout_ms: int = 30000):
    """
    Start a worker and wait for one of its signals.

    Returns:
        The value emitted by the signal, or None on timeout.
    """
    get_app()
    loop = QEventLoop()
    result = [None]

    def on_signal(*args):
        result[0] = args[0] if len(args) == 1 else args
        loop.quit()

    signal.connect(on_signal)

    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout_ms)

    worker.start()
    loop.exec()
    timer.stop()
    worker.wait()

    return result[0]


def make_masks(alpha: float = 0.5) -> MaskSet:
    return MaskSet(
        small=OpacityMask(48, 48, np.full(48 * 48, alpha, dtype=np.float32)),
        large=OpacityMask(96, 96, np.full(96 * 96, alpha, dtype=np.float32)),
    )


def create_test_image(folder: Path, name: str = "photo.jpg",
                      size: tuple = (200, 200)) -> Path:
    path = folder / name
    Image.new("RGB", size, (200, 200, 200)).save(path)
    return path


def test_mask_load_worker(tmp_path):
    small = tmp_path / "mask_48.png"
    large = tmp_path / "mask_96.png"
    Image.new("RGB", (48, 48), (128, 128, 128)).save(small)
    Image.new("RGB", (96, 96), (64, 64, 64)).save(large)

    worker = MaskLoadWorker(small, large)
    masks = run_until(worker, worker.masks_ready)

    assert masks is not None, "Worker timed out"
    assert masks.ready
    assert masks.large.alphas[0] == pytest.approx(64 / 255)


def test_mask_load_worker_reports_missing_asset(tmp_path):
    small = tmp_path / "mask_48.png"
    Image.new("RGB", (48, 48), (128, 128, 128)).save(small)

    worker = MaskLoadWorker(small, tmp_path / "missing.png")
    errors = []
    worker.asset_error.connect(lambda variant, msg: errors.append(variant))
    masks = run_until(worker, worker.masks_ready)

    assert masks is not None, "Worker timed out"
    assert masks.small is not None
    assert masks.large is None
    assert errors == ["large"]


def test_unblend_worker_hands_buffer_back():
    buffer = PixelBuffer.blank(200, 200, (200, 200, 200, 255))
    worker = UnblendWorker(buffer, UnblendConfig(), make_masks())
    del buffer

    cleaned = run_until(worker, worker.finished_buffer)

    assert isinstance(cleaned, PixelBuffer)
    assert (cleaned.pixels()[150, 150, :3] == 145).all()
    assert (cleaned.pixels()[0, 0, :3] == 200).all()


def test_unblend_worker_returns_untouched_buffer_on_missing_mask():
    buffer = PixelBuffer.blank(200, 200, (200, 200, 200, 255))
    before = buffer.samples.copy()
    worker = UnblendWorker(buffer, UnblendConfig(force_mode=ForceMode.LARGE),
                           MaskSet(small=make_masks().small))
    messages = []
    worker.error.connect(messages.append)

    returned = run_until(worker, worker.failed_buffer)

    assert returned is not None, "Worker timed out"
    assert np.array_equal(returned.samples, before)
    assert messages and "large" in messages[0]


def test_batch_remove_worker(tmp_path):
    images = [
        create_test_image(tmp_path, "first.png"),
        create_test_image(tmp_path, "second.jpg"),
    ]
    output_dir = tmp_path / "out"
    config = BatchRemoveConfig(image_paths=images, output_dir=output_dir)

    worker = BatchRemoveWorker(config, make_masks())
    progress_log = []
    worker.progress.connect(lambda c, t, f: progress_log.append((c, t, f)))

    results = run_until(worker, worker.finished_all)

    assert results is not None, "Worker timed out"
    assert len(results) == 2
    assert all(r.success for r in results), [r.error_message for r in results]
    assert progress_log == [(1, 2, "first.png"), (2, 2, "second.jpg")]

    first: RemoveResult = results[0]
    assert first.output_path == output_dir / "first_clean.png"
    with Image.open(first.output_path) as cleaned:
        assert cleaned.getpixel((150, 150)) == (145, 145, 145, 255)
        assert cleaned.getpixel((10, 10)) == (200, 200, 200, 255)


def test_batch_remove_worker_records_bad_file(tmp_path):
    good = create_test_image(tmp_path, "good.png")
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")

    config = BatchRemoveConfig(image_paths=[bad, good], output_dir=tmp_path / "out")
    worker = BatchRemoveWorker(config, make_masks())
    results = run_until(worker, worker.finished_all)

    assert results is not None, "Worker timed out"
    assert [r.success for r in results] == [False, True]
    assert results[0].error_message


def test_batch_remove_worker_rejects_auto_without_both_masks(tmp_path):
    config = BatchRemoveConfig(
        image_paths=[create_test_image(tmp_path)],
        output_dir=tmp_path / "out"
    )
    worker = BatchRemoveWorker(config, MaskSet(small=make_masks().small))
    errors = []
    worker.error.connect(errors.append)

    results = run_until(worker, worker.finished_all)

    assert results == []
    assert errors
    assert not (tmp_path / "out").exists()


def test_clean_filename():
    assert clean_filename(Path("/tmp/holiday.photo.jpeg")) == "holiday.photo_clean.png"


def test_batch_remove_worker_keeps_images_sharing_a_stem(tmp_path):
    nested = tmp_path / "nested"
    nested.mkdir()
    images = [
        create_test_image(tmp_path, "shot.png"),
        create_test_image(tmp_path, "shot.jpg"),
        create_test_image(nested, "shot.png"),
    ]
    output_dir = tmp_path / "out"
    config = BatchRemoveConfig(image_paths=images, output_dir=output_dir)

    worker = BatchRemoveWorker(config, make_masks())
    results = run_until(worker, worker.finished_all)

    assert results is not None, "Worker timed out"
    assert all(r.success for r in results), [r.error_message for r in results]
    assert [r.output_path for r in results] == [
        output_dir / "shot_clean.png",
        output_dir / "shot_clean_1.png",
        output_dir / "shot_clean_2.png",
    ]
    assert sorted(p.name for p in output_dir.iterdir()) == [
        "shot_clean.png", "shot_clean_1.png", "shot_clean_2.png"
    ]


def test_clean_filename_with_index():
    assert clean_filename(Path("shot.jpg"), 2) == "shot_clean_2.png"
