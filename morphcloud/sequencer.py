"""Which shape is showing, and when to move on to the next one."""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Union

from morphcloud.shapes import ShapeType, resolve_shape
from morphcloud.util import return_none

AUTO_SWITCH_INTERVAL = 8.0  # seconds


@dataclass(frozen=True)
class ShapeConfig:
    shape: ShapeType
    color: str
    camera_z: float


# The order and visual properties of each shape
SHAPE_SEQUENCE = (
    ShapeConfig(ShapeType.VORTEX, '#4f46e5', 35),
    ShapeConfig(ShapeType.KOCH, '#06b6d4', 40),
    ShapeConfig(ShapeType.CARDIOID, '#db2777', 25),
    ShapeConfig(ShapeType.BUTTERFLY, '#9333ea', 30),
    ShapeConfig(ShapeType.ARCHIMEDES, '#ea580c', 45),
    ShapeConfig(ShapeType.CATENARY, '#16a34a', 35),
    ShapeConfig(ShapeType.LEMNISCATE, '#facc15', 30),
    ShapeConfig(ShapeType.ROSE, '#dc2626', 25),
)


@dataclass
class PlaybackState:
    index: int = 0
    is_playing: bool = True
    manual_override: bool = False


class PlaybackSequencer:
    """
    Steps through a sequence of shape configs, automatically every `interval`
    seconds while playing, or on demand.

    Picking a shape by hand pauses the automatic switching until play is
    toggled back on.

    >>> seq = PlaybackSequencer(interval=8)
    >>> seq.current.shape.value
    'vortex'
    >>> seq.tick(8.0)
    True
    >>> seq.current.shape.value
    'koch'
    >>> seq.select('rose')
    True
    >>> seq.tick(100)
    False
    >>> seq.state
    PlaybackState(index=7, is_playing=False, manual_override=True)
    """

    def __init__(
        self,
        sequence: Sequence[ShapeConfig] = SHAPE_SEQUENCE,
        *,
        interval: float = AUTO_SWITCH_INTERVAL,
        on_shape_selected: Optional[Callable] = None,
        on_color_changed: Optional[Callable] = None,
        state: Optional[PlaybackState] = None,
    ):
        if not sequence:
            raise ValueError("The shape sequence can't be empty")
        if interval <= 0:
            raise ValueError(f"interval should be positive, was {interval}")
        self.sequence = tuple(sequence)
        self.interval = interval
        self.on_shape_selected = on_shape_selected or return_none
        self.on_color_changed = on_color_changed or return_none
        self.state = state if state is not None else PlaybackState()
        self._since_switch = 0.0

    @property
    def current(self) -> ShapeConfig:
        return self.sequence[self.state.index]

    @property
    def auto_advancing(self) -> bool:
        return self.state.is_playing and not self.state.manual_override

    def index_of(self, shape: Union[ShapeType, str]) -> int:
        """Index of the shape in the sequence, or -1 if it's not there."""
        shape = resolve_shape(shape)
        for i, config in enumerate(self.sequence):
            if config.shape == shape:
                return i
        return -1

    def _go_to(self, index: int):
        previous = self.current
        self.state.index = index % len(self.sequence)
        self._since_switch = 0.0
        config = self.current
        if config.shape != previous.shape:
            self.on_shape_selected(config.shape)
        if config.color != previous.color:
            self.on_color_changed(config.color)

    def _take_over(self):
        self.state.manual_override = True
        self.state.is_playing = False

    def tick(self, dt: float) -> bool:
        """
        Let `dt` seconds pass. Returns True if that switched to the next shape.
        """
        if not self.auto_advancing:
            return False
        self._since_switch += dt
        if self._since_switch < self.interval:
            return False
        self._go_to(self.state.index + 1)
        return True

    def select(self, shape: Union[ShapeType, str]) -> bool:
        """
        Show the given shape and stop the automatic switching.

        Returns False (and changes nothing) if the shape isn't in the sequence.
        """
        index = self.index_of(shape)
        if index == -1:
            return False
        self._go_to(index)
        self._take_over()
        return True

    def next(self):
        self._go_to(self.state.index + 1)
        self._take_over()

    def previous(self):
        self._go_to(self.state.index - 1)
        self._take_over()

    def toggle_play(self) -> bool:
        """Toggle play/pause. Resuming play hands control back to the timer."""
        self.state.is_playing = not self.state.is_playing
        if self.state.is_playing:
            self.state.manual_override = False
        self._since_switch = 0.0
        return self.state.is_playing
