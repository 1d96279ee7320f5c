"""Tests for the video recorder entry point."""

from __future__ import annotations

from capture.replay_provider import ReplayStreamProvider
from record.meta_information import load_meta_information
from scripts import video_recorder


def test_file_input_ends_cleanly(tmp_path, video_path) -> None:
    prefix = tmp_path / "copy"

    video_recorder.main(
        ["-i", str(video_path), "-o", str(prefix), "--no-display", "--logs-dir", str(tmp_path / "logs")]
    )

    meta = load_meta_information(tmp_path / "copy.json")
    assert len(meta.frames) == 5
    with ReplayStreamProvider(tmp_path / "copy.avi", tmp_path / "copy.json") as replay:
        assert replay.get_nb_frames() == 5


def test_max_frames(tmp_path) -> None:
    prefix = tmp_path / "sim"

    video_recorder.main(
        [
            "--backend", "sim",
            "--max-frames", "3",
            "-o", str(prefix),
            "--no-display",
            "--logs-dir", str(tmp_path / "logs"),
        ]
    )

    assert len(load_meta_information(tmp_path / "sim.json").frames) == 3
