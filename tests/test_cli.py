"""
Command line tool tests (MediaPipe is bypassed with --eyes).
"""
import argparse
import json

import cv2
import numpy as np
import pytest

from frame_tryon.cli import fit_display_width, main, parse_eyes


@pytest.fixture
def inputs(tmp_path, opaque_frame_image):
    photo_path = tmp_path / "face.png"
    frame_path = tmp_path / "frame.png"
    cv2.imwrite(str(photo_path), np.full((300, 400, 3), 180, np.uint8))
    cv2.imwrite(str(frame_path), opaque_frame_image)
    return photo_path, frame_path


def test_parse_eyes():
    pair = parse_eyes("0.35,0.5,0.65,0.5")
    assert (pair.left_eye.x, pair.right_eye.x) == (0.35, 0.65)

    with pytest.raises(argparse.ArgumentTypeError):
        parse_eyes("0.35,0.5")


def test_writes_native_resolution_output(inputs, tmp_path, capsys):
    photo_path, frame_path = inputs
    out_path = tmp_path / "out.png"

    code = main([
        '--photo', str(photo_path), '--frame', str(frame_path), '--out', str(out_path),
        '--eyes', '0.35,0.5,0.65,0.5', '--json',
    ])

    assert code == 0
    written = cv2.imread(str(out_path))
    assert written.shape == (300, 400, 3)

    state = json.loads(capsys.readouterr().out)
    assert state['last_trigger'] == 'asset_changed'
    assert state['transform']['x'] == 200
    assert state['transform']['scale'] == pytest.approx(140 * 120 / 63 / 300, abs=1e-4)


def test_manual_adjustments(inputs, tmp_path, capsys):
    photo_path, frame_path = inputs

    code = main([
        '--photo', str(photo_path), '--frame', str(frame_path), '--out', str(tmp_path / "out.jpg"),
        '--eyes', '0.35,0.5,0.65,0.5', '--dx', '10', '--rotation', '90', '--json',
    ])

    assert code == 0
    state = json.loads(capsys.readouterr().out)
    assert state['transform']['x'] == 210
    assert state['transform']['rotation'] == 45
    assert state['auto_align_enabled'] is False


def test_missing_photo(tmp_path):
    code = main([
        '--photo', str(tmp_path / "nope.png"), '--frame', 'frame.png',
        '--out', str(tmp_path / "out.png"), '--eyes', '0.35,0.5,0.65,0.5',
    ])
    assert code == 1


def test_missing_frame_fails_export(inputs, tmp_path):
    photo_path, _ = inputs
    out_path = tmp_path / "out.png"

    code = main([
        '--photo', str(photo_path), '--frame', str(tmp_path / "missing.png"),
        '--out', str(out_path), '--eyes', '0.35,0.5,0.65,0.5',
    ])

    assert code == 1
    assert not out_path.exists()


def test_eyes_outside_unit_range_rejected():
    with pytest.raises(argparse.ArgumentTypeError):
        parse_eyes("0.35,0.5,1.65,0.5")


def test_display_width_sets_placement_space(inputs, tmp_path, capsys):
    photo_path, frame_path = inputs
    out_path = tmp_path / "out.png"

    code = main([
        '--photo', str(photo_path), '--frame', str(frame_path), '--out', str(out_path),
        '--eyes', '0.35,0.5,0.65,0.5', '--display-width', '200', '--json',
    ])

    assert code == 0
    state = json.loads(capsys.readouterr().out)
    assert state['container'] == {'width': 200.0, 'height': 150.0}
    assert state['transform']['x'] == 100
    assert cv2.imread(str(out_path)).shape == (300, 400, 3)


def test_fit_display_width_never_upscales():
    photo = np.zeros((300, 400, 3), np.uint8)
    assert fit_display_width(photo, 1000) is photo
    assert fit_display_width(photo, 100).shape == (75, 100, 3)
