"""
오버레이 변환 조작 상태 머신

현재 PlacementTransform을 소유한다. 포인터 드래그는 컨테이너 픽셀 좌표계에서
위치를 옮기고, 슬라이더는 scale / rotation 값을 직접 덮어쓴다.
"""
from enum import Enum
from typing import Callable, Optional

from ..models.input_events import MouseEvent, TouchEvent, mouse_position, touch_position
from ..models.landmark_models import PlacementTransform
from ..utils import get_logger
from ..utils.validators import validate_container_size

logger = get_logger(__name__)


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class ManipulationStateMachine:
    """
    세션 하나의 드래그 / 배율 / 회전 상태

    상태: begin_drag 시 IDLE → DRAGGING, end_drag 또는 cancel_drag 시 DRAGGING → IDLE.
    IDLE 상태의 update_drag는 아무 일도 하지 않는다.
    """

    def __init__(self, transform: Optional[PlacementTransform] = None):
        self._transform = transform.copy() if transform else PlacementTransform()
        self.state = DragState.IDLE
        self._drag_start = (0.0, 0.0)
        self._anchor = (0.0, 0.0)

    @property
    def transform(self) -> PlacementTransform:
        """현재 변환 (복사본)"""
        return self._transform.copy()

    @property
    def is_dragging(self) -> bool:
        return self.state is DragState.DRAGGING

    def begin_drag(self, pointer_x: float, pointer_y: float) -> None:
        self._drag_start = (pointer_x, pointer_y)
        self._anchor = (self._transform.x, self._transform.y)
        self.state = DragState.DRAGGING

    def update_drag(self, pointer_x: float, pointer_y: float) -> bool:
        """
        begin_drag 이후 포인터 이동량만큼 피벗 이동

        매 호출이 드래그 시작 지점 기준으로 계산되므로 마지막 포인터 위치만 의미가 있고
        중간 이벤트가 빠져도 결과는 같다.

        Returns:
            bool: 변환이 바뀌었는지 여부
        """
        if self.state is not DragState.DRAGGING:
            return False

        start_x, start_y = self._drag_start
        anchor_x, anchor_y = self._anchor
        self._transform.x = anchor_x + (pointer_x - start_x)
        self._transform.y = anchor_y + (pointer_y - start_y)
        return True

    def end_drag(self) -> None:
        self.state = DragState.IDLE

    def cancel_drag(self) -> None:
        # 포인터 이탈 / 터치 취소도 포인터 업과 동일하게 종료
        self.end_drag()

    def set_scale(self, value: float) -> None:
        if value is None or value <= 0:
            raise ValueError(f"scale must be > 0, got {value}")
        self._transform.scale = float(value)

    def set_rotation(self, value: float) -> None:
        self._transform.rotation = float(value)

    def reset(self, container_width: float, container_height: float) -> PlacementTransform:
        """컨테이너 중앙, scale=1, rotation=0 으로 초기화"""
        validate_container_size(container_width, container_height)
        self.end_drag()
        self._transform = PlacementTransform(
            x=container_width / 2,
            y=container_height / 2,
            scale=1.0,
            rotation=0.0,
        )
        return self.transform

    def apply_transform(self, transform: PlacementTransform) -> None:
        """자동 정렬 결과로 변환 전체를 교체 (진행 중인 드래그는 종료)"""
        if transform.scale <= 0:
            raise ValueError(f"scale must be > 0, got {transform.scale}")
        self.end_drag()
        self._transform = transform.copy()


class PointerInput:
    """
    마우스 / 터치 이벤트를 하나의 ManipulationStateMachine으로 전달

    입력 방식별 차이는 좌표 추출뿐이다. 종료 / 이탈 / 취소 이벤트는 어느 입력으로
    시작된 제스처든 종료시킨다. on_change는 변환이 실제로 바뀐 이동 후에만 호출된다.
    """

    def __init__(self, machine: ManipulationStateMachine,
                 on_change: Optional[Callable[[], None]] = None):
        self.machine = machine
        self.on_change = on_change

    def _begin(self, position) -> None:
        if position is None:
            return
        self.machine.begin_drag(*position)

    def _move(self, position) -> None:
        if position is None:
            return
        if self.machine.update_drag(*position) and self.on_change:
            self.on_change()

    def _end(self) -> None:
        self.machine.end_drag()

    # 마우스
    def on_mouse_down(self, event: MouseEvent) -> None:
        self._begin(mouse_position(event))

    def on_mouse_move(self, event: MouseEvent) -> None:
        self._move(mouse_position(event))

    def on_mouse_up(self, event: Optional[MouseEvent] = None) -> None:
        self._end()

    def on_mouse_leave(self, event: Optional[MouseEvent] = None) -> None:
        self._end()

    # 터치
    def on_touch_start(self, event: TouchEvent) -> None:
        self._begin(touch_position(event))

    def on_touch_move(self, event: TouchEvent) -> None:
        self._move(touch_position(event))

    def on_touch_end(self, event: Optional[TouchEvent] = None) -> None:
        self._end()

    def on_touch_cancel(self, event: Optional[TouchEvent] = None) -> None:
        self._end()
