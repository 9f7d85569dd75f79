"""
세션 상태를 외부 호출자용 JSON으로 변환
"""
from datetime import datetime


def to_session_json(session, image_path=""):
    """
    OverlaySession 상태를 JSON 직렬화 가능한 딕셔너리로 변환
    - transform: 컨테이너 좌표계 배치
    - blend: 밝기/대비
    - fusion_hints: 정규화 피벗 + 회전

    Args:
        session: OverlaySession
        image_path: 원본 사진 경로 (선택)

    Returns:
        dict: JSON 직렬화 가능한 딕셔너리
    """
    landmarks = session.landmarks
    asset = session.asset

    output = {
        # 배치
        "transform": session.transform.to_dict(),
        "container": {
            "width": session.container_width,
            "height": session.container_height,
        },
        "blend": session.blend.to_dict(),

        # 정렬 상태
        "auto_align_enabled": session.auto_align_enabled,
        "last_trigger": session.last_trigger.value,
        "landmarks": landmarks.to_dict() if landmarks else None,
        "fusion_hints": session.fusion_hints().to_dict(),

        # 프레임
        "frame": asset.to_dict() if asset else None,

        # 메타데이터
        "photo_id": session.photo_id,
        "image_path": image_path,
        "timestamp": datetime.now().isoformat(),
    }

    return output
