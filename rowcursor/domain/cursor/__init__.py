from .window import DEFAULT_WINDOW, Window
from .row_slot import RowSlot
from .row_shape import DEFAULT_ROW_SHAPE, RowShape
from .status import CursorStatus
from .cursor import Cursor, CursorIterator

__all__ = [
    "Cursor",
    "CursorIterator",
    "CursorStatus",
    "RowShape",
    "RowSlot",
    "Window",
    "DEFAULT_ROW_SHAPE",
    "DEFAULT_WINDOW",
]
