"""포인터 입력 이벤트 레코드 (마우스 / 터치)"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class MouseEvent:
    """마우스 이벤트 (컨테이너 기준 client 좌표)"""

    client_x: float
    client_y: float


@dataclass(frozen=True)
class TouchPoint:
    client_x: float
    client_y: float
    identifier: int = 0


@dataclass(frozen=True)
class TouchEvent:
    """터치 이벤트 - 현재 화면에 닿아 있는 터치 포인트 목록"""

    touches: List[TouchPoint] = field(default_factory=list)


def mouse_position(event: MouseEvent) -> Tuple[float, float]:
    return event.client_x, event.client_y


def touch_position(event: TouchEvent) -> Optional[Tuple[float, float]]:
    """첫 번째 터치 포인트 좌표 (터치가 없으면 None)"""
    if not event.touches:
        return None
    touch = event.touches[0]
    return touch.client_x, touch.client_y
