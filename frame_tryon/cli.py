#!/usr/bin/env python3
"""
안경 가상 피팅 커맨드라인 도구

사진 + 안경 이미지 → 자동 정렬 (+ 수동 보정) → 원본 해상도 합성 이미지 저장

Usage:
    frame-tryon --photo face.jpg --frame frame.png --out result.png
    frame-tryon --photo face.jpg --frame frame.png --out result.png --eyes 0.35,0.5,0.65,0.5 --json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import cv2

from .core.landmark_detector import FixedLandmarkDetector, MediaPipeEyeDetector
from .core.overlay_session import OverlaySession
from .models.landmark_models import EyePoint, LandmarkPair, OverlayAsset
from .utils import get_config, get_logger
from .utils.image_utils import to_bgr
from .utils.json_exporter import to_session_json
from .utils.validators import validate_normalized

logger = get_logger(__name__)


def parse_eyes(value: str) -> LandmarkPair:
    """'lx,ly,rx,ry' (정규화 좌표) → LandmarkPair"""
    try:
        lx, ly, rx, ry = (float(v) for v in value.split(','))
        for name, v in zip(('lx', 'ly', 'rx', 'ry'), (lx, ly, rx, ry)):
            validate_normalized(v, name)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"--eyes expects normalized 'lx,ly,rx,ry', got {value!r} ({e})")
    return LandmarkPair(EyePoint(lx, ly), EyePoint(rx, ry))


def fit_display_width(photo, display_width: int):
    """
    표시용 사진 생성 - 너비가 display_width보다 크면 비율을 유지하며 축소 (확대는 하지 않음)

    Args:
        photo: 원본 해상도 BGR 사진
        display_width: 표시 영역 너비 (px)

    Returns:
        표시 해상도 사진 (축소가 필요 없으면 원본 그대로)
    """
    h, w = photo.shape[:2]
    if display_width <= 0 or w <= display_width:
        return photo

    ratio = display_width / w
    new_size = (int(display_width), max(1, round(h * ratio)))
    return cv2.resize(photo, new_size, interpolation=cv2.INTER_AREA)


def build_parser() -> argparse.ArgumentParser:
    """명령행 인자 파서 생성 (기본값은 config.yaml)"""
    config = get_config()
    parser = argparse.ArgumentParser(description='얼굴 사진 위에 안경 프레임을 정렬해 합성')
    parser.add_argument('--photo', required=True, help='얼굴 사진 경로')
    parser.add_argument('--frame', required=True, help='안경 이미지 경로 또는 URL')
    parser.add_argument('--out', required=True, help='출력 이미지 경로')
    parser.add_argument('--width-mm', type=float,
                        default=config.geometry.default_physical_width_mm,
                        help='프레임 실제 너비 mm (기본값: config)')
    parser.add_argument('--format', dest='image_format', default=None,
                        help='png / jpg / webp (기본값: 출력 파일 확장자)')
    parser.add_argument('--display-width', type=int, default=1000,
                        help='배치를 계산할 표시 영역 너비 px (원본보다 크면 확대하지 않음)')
    parser.add_argument('--eyes', type=parse_eyes, default=None,
                        help="정규화 눈 중심 'lx,ly,rx,ry' (지정하면 MediaPipe 검출 생략)")
    parser.add_argument('--dx', type=float, default=0.0, help='수동 가로 이동 (표시 px)')
    parser.add_argument('--dy', type=float, default=0.0, help='수동 세로 이동 (표시 px)')
    parser.add_argument('--scale', type=float, default=None, help='배율 직접 지정')
    parser.add_argument('--rotation', type=float, default=None, help='회전 직접 지정 (도)')
    parser.add_argument('--brightness', type=float, default=None, help='오버레이 밝기 (%%)')
    parser.add_argument('--contrast', type=float, default=None, help='오버레이 대비 (%%)')
    parser.add_argument('--json', action='store_true', help='세션 상태를 JSON으로 출력')
    return parser


def run(args: argparse.Namespace) -> int:
    """
    한 장 처리: 로드 → 검출/정렬 → 수동 보정 → 내보내기

    Returns:
        int: 종료 코드 (0 성공, 1 실패)
    """
    photo = cv2.imread(args.photo, cv2.IMREAD_COLOR)
    if photo is None:
        logger.error(f"Cannot read photo: {args.photo}")
        return 1
    photo = to_bgr(photo)

    display_photo = fit_display_width(photo, args.display_width)
    display_h, display_w = display_photo.shape[:2]

    detector = FixedLandmarkDetector(args.eyes) if args.eyes else MediaPipeEyeDetector()
    session = OverlaySession(detector, display_w, display_h)

    try:
        session.load_photo(str(Path(args.photo).resolve()), display_photo)
        session.wait_for_detection()
        if session.landmarks is None:
            logger.warning("No eyes detected, using centered placement")

        session.select_asset(OverlayAsset(
            asset_id=str(args.frame),
            image_source=args.frame,
            physical_width_mm=args.width_mm,
        ))

        if args.dx or args.dy:
            session.begin_drag(0.0, 0.0)
            session.update_drag(args.dx, args.dy)
            session.end_drag()
        if args.scale is not None:
            session.adjust_scale(args.scale)
        if args.rotation is not None:
            session.adjust_rotation(args.rotation)
        if args.brightness is not None:
            session.set_brightness(args.brightness)
        if args.contrast is not None:
            session.set_contrast(args.contrast)

        image_format = args.image_format or Path(args.out).suffix.lstrip('.') or None
        result = session.export(photo, image_format)
        if not result.success:
            logger.error(f"Export failed: {result.error}")
            return 1

        Path(args.out).write_bytes(result.data)
        logger.info(f"Saved {args.out} ({photo.shape[1]}x{photo.shape[0]})")

        if args.json:
            print(json.dumps(to_session_json(session, args.photo), indent=2, ensure_ascii=False))
    finally:
        session.close()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """메인 함수"""
    args = build_parser().parse_args(argv)
    return run(args)


if __name__ == '__main__':
    sys.exit(main())
