#!/usr/bin/env python3
"""popword: turn typed words into draggable cards and rank them on a board."""

from __future__ import annotations

import argparse
from collections import Counter
from dataclasses import dataclass, replace
from io import BytesIO
import math
import os
import random
import shutil
import subprocess
import sys
import time
import uuid
from pathlib import Path
from typing import Callable, Iterable, Sequence

from markdown_it import MarkdownIt
from PySide6.QtCore import QBuffer, QIODevice, QObject, QPointF, QRectF, QRunnable, QSizeF, Qt, QThreadPool, QTimer, Signal
from PySide6.QtGui import QClipboard, QColor, QFont, QFontMetricsF, QIcon, QImage, QPainter, QPen, QPixmap
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QSplitter,
    QVBoxLayout,
    QWidget,
)

CONFIG_FILE_NAME = ".popword.cfg"
DEFAULT_BOARD_TITLE = "RANKING BOARD"
MIN_BOARD_SLOTS = 5
RANKING = "ranking"
STACK = "stack"
CONTAINERS = (RANKING, STACK)
TEXT_SYNC_DELAY_MS = 120
DRAG_ACTIVATION_DISTANCE = 5
STATUS_MESSAGE_MS = 3000
EXPORT_BACKGROUND = "#FFF5E1"
EXPORT_SCALE = 2.0
EXPORT_BOARD_WIDTH = 640
RANKING_PNG_NAME = "ranking.png"
RANKING_PDF_NAME = "ranking.pdf"
WORD_CLOUD_PNG_NAME = "wordcloud.png"
CLOUD_CANVAS_SIZE = (1920, 1080)
CLOUD_BACKGROUND = "#ffffff"
CLOUD_PALETTE = (
    "#e11d48",
    "#d97706",
    "#16a34a",
    "#2563eb",
    "#7c3aed",
    "#db2777",
    "#0891b2",
    "#ca8a04",
    "#4f46e5",
    "#b45309",
)
CLOUD_MAX_WIDTH_RATIO = 0.9
CLOUD_SHRINK_FACTOR = 0.9
CLOUD_MIN_FONT_SIZE = 10
CLOUD_RETRY_MIN_FONT_SIZE = 20
CLOUD_BOX_PADDING = 10
CLOUD_SPIRAL_ANGLE_STEP = 0.2
CLOUD_SPIRAL_RADIUS_PER_RADIAN = 10.0
CLOUD_SPIRAL_MAX_STEPS = 5000
BOARD_COLOR = "#14532d"
BOARD_BORDER_COLOR = "#facc15"
STACK_COLOR = "#1f2937"
CARD_TEXT_COLOR = "#7e22ce"
RANK_NUMBER_COLOR = "#b45309"
ROW_HEIGHT = 52
ROW_GAP = 8
HEADER_HEIGHT = 64
RANK_NUMBER_WIDTH = 56
COLUMN_PADDING = 12

HOW_TO_USE_MARKDOWN = """\
**How to play**

1. Type words in the box, one per line.
2. Drag the generated cards onto the ranking board.
3. Order them to decide the ranking (edit the title above the board).
4. Save the result as an image, a PDF, or a word cloud and share it.

Keyboard: arrows move the cursor, Space picks up or drops a card, and Escape cancels.
"""


def _config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def _load_default_export_dir() -> Path:
    """Resolve the export directory when no CLI option is provided."""
    fallback = Path.cwd()
    cfg_path = _config_file_path()
    try:
        if not cfg_path.exists():
            return fallback
        raw = cfg_path.read_text(encoding="utf-8").strip()
        if not raw:
            return fallback
        candidate = Path(raw).expanduser()
        if candidate.is_dir():
            return candidate.resolve()
    except Exception:
        # Any read or parse problem falls back to the working directory.
        pass
    return fallback


def new_item_id() -> str:
    """Return a fresh, never-reused card id."""
    return f"item-{time.time_ns() // 1_000_000}-{uuid.uuid4().hex[:9]}"


@dataclass(frozen=True)
class WordItem:
    id: str
    text: str


@dataclass(frozen=True)
class BoardState:
    """The ranked board and the waiting stack, as one immutable pair."""

    ranking: tuple[WordItem, ...] = ()
    stack: tuple[WordItem, ...] = ()

    def items_in(self, container: str) -> tuple[WordItem, ...]:
        if container == RANKING:
            return self.ranking
        if container == STACK:
            return self.stack
        raise KeyError(container)

    def find_container(self, item_id: str) -> str | None:
        """Locate an id in the ranking first, then in the stack."""
        if any(item.id == item_id for item in self.ranking):
            return RANKING
        if any(item.id == item_id for item in self.stack):
            return STACK
        return None

    def resolve_container(self, target_id: str) -> str | None:
        """Map a drop target (container name or card id) to a container."""
        if target_id in CONTAINERS:
            return target_id
        return self.find_container(target_id)

    def find_item(self, item_id: str) -> WordItem | None:
        for item in self.ranking + self.stack:
            if item.id == item_id:
                return item
        return None

    def with_items(self, container: str, items: Iterable[WordItem]) -> BoardState:
        if container == RANKING:
            return replace(self, ranking=tuple(items))
        if container == STACK:
            return replace(self, stack=tuple(items))
        raise KeyError(container)


def split_input_lines(raw_text: str) -> list[str]:
    """Split the text buffer into lines, dropping whitespace-only ones."""
    normalized = (raw_text or "").replace("\r\n", "\n")
    return [line for line in normalized.split("\n") if line.strip()]


def reconcile_items(
    lines: Sequence[str],
    previous: BoardState,
    id_factory: Callable[[], str] | None = None,
) -> BoardState:
    """Resynchronize the board with the current lines.

    Existing cards are kept in walk order (ranking first, then stack) while
    their text still has unclaimed occurrences in ``lines``; the remainder is
    dropped. Missing occurrences become new cards appended to the stack in
    first-appearance order. No card ever enters the ranking here.
    """
    make_id = id_factory or new_item_id
    wanted = Counter(lines)
    used: dict[str, int] = {}

    def claim(item: WordItem) -> bool:
        count = used.get(item.text, 0)
        if count < wanted.get(item.text, 0):
            used[item.text] = count + 1
            return True
        return False

    ranking = tuple(item for item in previous.ranking if claim(item))
    stack = [item for item in previous.stack if claim(item)]
    for text, count in wanted.items():
        for _ in range(count - used.get(text, 0)):
            stack.append(WordItem(make_id(), text))
    return BoardState(ranking=ranking, stack=tuple(stack))


def shuffle_stack(board: BoardState, rng: random.Random | None = None) -> BoardState:
    """Fisher-Yates shuffle of the stack; the ranking is untouched."""
    rng = rng or random
    items = list(board.stack)
    for i in range(len(items) - 1, 0, -1):
        j = rng.randrange(i + 1)
        items[i], items[j] = items[j], items[i]
    return replace(board, stack=tuple(items))


def ranking_as_text(title: str, ranking: Sequence[WordItem]) -> str:
    lines = [f"{rank}. {item.text}" for rank, item in enumerate(ranking, start=1)]
    return f"{title}\n" + "\n".join(lines)


@dataclass(frozen=True)
class DragSession:
    """Idle when ``active_id`` is None, otherwise dragging that card."""

    active_id: str | None = None
    origin: str | None = None

    @property
    def is_dragging(self) -> bool:
        return self.active_id is not None


def _index_of(items: Sequence[WordItem], item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    return -1


def array_move(items: Sequence[WordItem], from_index: int, to_index: int) -> tuple[WordItem, ...]:
    moved = list(items)
    item = moved.pop(from_index)
    moved.insert(to_index, item)
    return tuple(moved)


def is_pointer_below(dragged_top: float, over_top: float, over_height: float) -> bool:
    """True when the dragged box has moved past the bottom edge of the target."""
    return dragged_top > over_top + over_height


def drag_start(board: BoardState, dragged_id: str) -> DragSession:
    origin = board.find_container(dragged_id)
    if origin is None:
        return DragSession()
    return DragSession(active_id=dragged_id, origin=origin)


def drag_over(
    session: DragSession,
    board: BoardState,
    over_id: str | None,
    pointer_below: bool = False,
) -> BoardState:
    """Move the dragged card live into another container it hovers over.

    Hovering within the card's current container changes nothing; that
    reorder is applied on release by :func:`drag_end`. Everything is
    recomputed from ``board`` so repeated calls never drift.
    """
    if not session.is_dragging or over_id is None:
        return board
    active_container = board.find_container(session.active_id)
    over_container = board.resolve_container(over_id)
    if active_container is None or over_container is None or active_container == over_container:
        return board

    item = board.find_item(session.active_id)
    source = [entry for entry in board.items_in(active_container) if entry.id != item.id]
    target = list(board.items_in(over_container))
    if over_id in CONTAINERS:
        new_index = len(target)
    else:
        over_index = _index_of(target, over_id)
        new_index = over_index + (1 if pointer_below else 0) if over_index >= 0 else len(target)
    target.insert(new_index, item)
    return board.with_items(active_container, source).with_items(over_container, target)


def drag_end(session: DragSession, board: BoardState, over_id: str | None) -> tuple[DragSession, BoardState]:
    """Finish the gesture; reorder within a container when dropped there."""
    idle = DragSession()
    if not session.is_dragging or over_id is None:
        return idle, board
    active_container = board.find_container(session.active_id)
    over_container = board.resolve_container(over_id)
    if active_container is None or active_container != over_container:
        return idle, board

    items = board.items_in(active_container)
    active_index = _index_of(items, session.active_id)
    if over_id in CONTAINERS:
        over_index = len(items) - 1
    else:
        over_index = _index_of(items, over_id)
    if over_index < 0 or active_index == over_index:
        return idle, board
    return idle, board.with_items(active_container, array_move(items, active_index, over_index))


class EmptyRankingError(ValueError):
    """Raised when a word cloud is requested for an empty ranking."""


@dataclass(frozen=True)
class PlacedGlyph:
    text: str
    font_size: float
    x: float
    y: float
    width: float
    height: float
    color: str


def cloud_font_size(rank: int) -> int:
    """Base font size for a 1-based rank."""
    if rank < 1:
        raise ValueError(f"rank must be 1 or greater, got {rank}")
    if rank <= 5:
        return 250 - (rank - 1) * 20
    group = (rank - 1) // 5
    sizes = {1: 120, 2: 90, 3: 70, 4: 50}
    return sizes.get(group, max(30, 50 - (group - 4) * 5))


def _padded_box(x: float, y: float, width: float, height: float) -> tuple[float, float, float, float]:
    pad = CLOUD_BOX_PADDING
    return (x - pad, y - pad, width + 2 * pad, height + 2 * pad)


def _boxes_overlap(a: tuple[float, float, float, float], b: tuple[float, float, float, float]) -> bool:
    ax, ay, aw, ah = a
    bx, by, bw, bh = b
    return ax < bx + bw and bx < ax + aw and ay < by + bh and by < ay + ah


def _spiral_search(
    box_width: float,
    box_height: float,
    canvas_size: tuple[int, int],
    occupied: list[tuple[float, float, float, float]],
    rng,
) -> tuple[float, float] | None:
    """Walk an Archimedean spiral out from the center; return a free top-left."""
    width, height = canvas_size
    center_x = width / 2.0
    center_y = height / 2.0
    start_angle = rng.uniform(0.0, 2.0 * math.pi)
    for step in range(CLOUD_SPIRAL_MAX_STEPS):
        travelled = step * CLOUD_SPIRAL_ANGLE_STEP
        radius = CLOUD_SPIRAL_RADIUS_PER_RADIAN * travelled
        angle = start_angle + travelled
        x = center_x + radius * math.cos(angle) - box_width / 2.0
        y = center_y + radius * math.sin(angle) - box_height / 2.0
        if x < 0 or y < 0 or x + box_width > width or y + box_height > height:
            continue
        # Both the candidate and every stored box carry the padding, so glyphs
        # end up at least twice the padding apart.
        candidate = _padded_box(x, y, box_width, box_height)
        if not any(_boxes_overlap(candidate, other) for other in occupied):
            return x, y
    return None


def layout_word_cloud(
    ranking: Sequence[WordItem],
    canvas_size: tuple[int, int] = CLOUD_CANVAS_SIZE,
    measure: Callable[[str, float], tuple[float, float]] | None = None,
    rng: random.Random | None = None,
    palette: Sequence[str] = CLOUD_PALETTE,
) -> list[PlacedGlyph]:
    """Place ranked words greedily, biggest first, without overlaps.

    Words that cannot be placed even after one halving retry are left out of
    the result; that is reported on stderr and is not an error.
    """
    if not ranking:
        raise EmptyRankingError("Nothing to lay out: the ranking is empty")
    measure = measure or QtTextMeasurer()
    rng = rng or random
    canvas_width = canvas_size[0]

    placed: list[PlacedGlyph] = []
    occupied: list[tuple[float, float, float, float]] = []
    for rank, item in enumerate(ranking, start=1):
        font_size = float(cloud_font_size(rank))
        color = rng.choice(palette)
        box_width, box_height = measure(item.text, font_size)
        while box_width > canvas_width * CLOUD_MAX_WIDTH_RATIO and font_size > CLOUD_MIN_FONT_SIZE:
            font_size *= CLOUD_SHRINK_FACTOR
            box_width, box_height = measure(item.text, font_size)

        position = _spiral_search(box_width, box_height, canvas_size, occupied, rng)
        if position is None and font_size > CLOUD_RETRY_MIN_FONT_SIZE:
            font_size /= 2.0
            box_width, box_height = measure(item.text, font_size)
            position = _spiral_search(box_width, box_height, canvas_size, occupied, rng)
        if position is None:
            print(f"popword: word cloud skipped rank {rank} {item.text!r}: no free space", file=sys.stderr)
            continue

        x, y = position
        occupied.append(_padded_box(x, y, box_width, box_height))
        placed.append(PlacedGlyph(item.text, font_size, x, y, box_width, box_height, color))
    return placed


class QtTextMeasurer:
    """Measure word-cloud glyph boxes with Qt font metrics."""

    def __init__(self, family: str | None = None) -> None:
        self.family = family

    def font_for(self, font_size: float) -> QFont:
        font = QFont(self.family) if self.family else QFont()
        font.setPixelSize(max(1, int(round(font_size))))
        font.setBold(True)
        return font

    def __call__(self, text: str, font_size: float) -> tuple[float, float]:
        metrics = QFontMetricsF(self.font_for(font_size))
        return metrics.horizontalAdvance(text), metrics.height()


def render_word_cloud_image(
    glyphs: Sequence[PlacedGlyph],
    canvas_size: tuple[int, int] = CLOUD_CANVAS_SIZE,
    measurer: QtTextMeasurer | None = None,
) -> QImage:
    measurer = measurer or QtTextMeasurer()
    image = QImage(canvas_size[0], canvas_size[1], QImage.Format.Format_ARGB32)
    image.fill(QColor(CLOUD_BACKGROUND))
    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    for glyph in glyphs:
        painter.setFont(measurer.font_for(glyph.font_size))
        painter.setPen(QColor(glyph.color))
        painter.drawText(
            QRectF(glyph.x, glyph.y, glyph.width, glyph.height),
            int(Qt.AlignmentFlag.AlignCenter),
            glyph.text,
        )
    painter.end()
    return image


def qimage_to_png_bytes(image: QImage) -> bytes:
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    if not image.save(buffer, "PNG"):
        raise RuntimeError("Could not encode image as PNG")
    return bytes(buffer.data().data())


def build_ranking_pdf(png_bytes: bytes, title: str = DEFAULT_BOARD_TITLE) -> bytes:
    """Place a rendered board image at the top of an A4 page, full width."""
    if not png_bytes:
        raise ValueError("Empty image payload")

    try:
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.utils import ImageReader
        from reportlab.pdfgen import canvas
    except Exception as exc:
        raise RuntimeError("Missing dependency 'reportlab' for PDF export") from exc

    image = ImageReader(BytesIO(png_bytes))
    image_width, image_height = image.getSize()
    if image_width <= 0 or image_height <= 0:
        raise RuntimeError("Rendered board image has no size")

    page_width, page_height = A4
    draw_width = page_width
    draw_height = image_height * page_width / image_width
    if draw_height > page_height:
        # Very long boards are shrunk to stay on a single page.
        draw_width = draw_width * page_height / draw_height
        draw_height = page_height

    output = BytesIO()
    pdf = canvas.Canvas(output, pagesize=A4)
    pdf.setTitle(title)
    pdf.drawImage(image, 0, page_height - draw_height, width=draw_width, height=draw_height)
    pdf.showPage()
    pdf.save()
    return output.getvalue()


def render_how_to_use_html(markdown_text: str = HOW_TO_USE_MARKDOWN) -> str:
    md = MarkdownIt("commonmark", {"html": False, "typographer": True})
    return md.render(markdown_text)


class ExportWorkerSignals(QObject):
    """Signals emitted by background export workers."""

    finished = Signal(str, str, str)


class ExportWorker(QRunnable):
    """Encode (for PDF) and write one export artifact in the background."""

    def __init__(self, kind: str, output_path: Path, png_bytes: bytes, title: str = ""):
        super().__init__()
        self.kind = kind
        self.output_path = output_path
        self.png_bytes = png_bytes
        self.title = title
        self.signals = ExportWorkerSignals()

    def run(self) -> None:
        try:
            payload = self.png_bytes
            if self.kind == "pdf":
                payload = build_ranking_pdf(self.png_bytes, self.title)
            self.output_path.write_bytes(payload)
            self.signals.finished.emit(self.kind, str(self.output_path), "")
        except Exception as exc:
            self.signals.finished.emit(self.kind, str(self.output_path), str(exc))


def _pen(color: QColor, width: float, style: Qt.PenStyle = Qt.PenStyle.SolidLine) -> QPen:
    pen = QPen(color)
    pen.setWidthF(width)
    pen.setStyle(style)
    return pen


def card_font_pixel_size(text: str) -> int:
    """Shrink card text in steps as words get longer."""
    length = len(text)
    if length > 34:
        return 12
    if length > 30:
        return 14
    if length > 25:
        return 16
    if length > 19:
        return 18
    return 24


def _paint_word_card(painter: QPainter, rect: QRectF, text: str, opacity: float = 1.0) -> None:
    painter.save()
    painter.setOpacity(opacity)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor(0, 0, 0, 50))
    painter.drawRoundedRect(rect.translated(4, 4), 6, 6)
    painter.setBrush(QColor("#ffffff"))
    painter.setPen(_pen(QColor("#d1d5db"), 1))
    painter.drawRoundedRect(rect, 6, 6)

    font = QFont()
    font.setPixelSize(card_font_pixel_size(text))
    font.setBold(True)
    painter.setFont(font)
    painter.setPen(QColor(CARD_TEXT_COLOR))
    text_rect = rect.adjusted(12, 0, -12, 0)
    elided = QFontMetricsF(font).elidedText(text, Qt.TextElideMode.ElideRight, text_rect.width())
    painter.drawText(text_rect, int(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignLeft), elided)
    painter.restore()


def ranking_slot_count(word_count: int, ranked_count: int = 0) -> int:
    return max(MIN_BOARD_SLOTS, word_count, ranked_count)


def _paint_ranking_column(
    painter: QPainter,
    rect: QRectF,
    title: str,
    items: Sequence[WordItem],
    slot_count: int,
    faded_id: str | None = None,
) -> None:
    """Paint the title, numbered slots and ranked cards of the board."""
    painter.save()
    painter.setPen(_pen(QColor(BOARD_BORDER_COLOR), 4))
    painter.setBrush(QColor(BOARD_COLOR))
    painter.drawRoundedRect(rect, 14, 14)

    title_font = QFont()
    title_font.setPixelSize(30)
    title_font.setBold(True)
    painter.setFont(title_font)
    painter.setPen(QColor("#ffffff"))
    title_rect = QRectF(rect.left(), rect.top(), rect.width(), HEADER_HEIGHT)
    painter.drawText(title_rect, int(Qt.AlignmentFlag.AlignCenter), title)

    number_font = QFont()
    number_font.setPixelSize(28)
    number_font.setBold(True)
    for index in range(slot_count):
        row = _row_rect(rect, index, RANK_NUMBER_WIDTH)
        number_rect = QRectF(rect.left() + COLUMN_PADDING, row.top(), RANK_NUMBER_WIDTH - COLUMN_PADDING, row.height())
        painter.setFont(number_font)
        painter.setPen(QColor(RANK_NUMBER_COLOR if index < 3 else "#fde68a"))
        painter.drawText(number_rect, int(Qt.AlignmentFlag.AlignCenter), str(index + 1))
        if index < len(items):
            item = items[index]
            _paint_word_card(painter, row, item.text, 0.4 if item.id == faded_id else 1.0)
        else:
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.setPen(_pen(QColor(255, 255, 255, 90), 2, Qt.PenStyle.DashLine))
            painter.drawRoundedRect(row, 6, 6)
    painter.restore()


def _row_rect(column: QRectF, index: int, indent: float = 0.0) -> QRectF:
    top = column.top() + HEADER_HEIGHT + index * (ROW_HEIGHT + ROW_GAP)
    left = column.left() + COLUMN_PADDING + indent
    return QRectF(left, top, column.width() - 2 * COLUMN_PADDING - indent, ROW_HEIGHT)


def _column_height(row_count: int) -> float:
    return HEADER_HEIGHT + row_count * (ROW_HEIGHT + ROW_GAP) + COLUMN_PADDING


def render_ranking_image(
    title: str,
    items: Sequence[WordItem],
    slot_count: int,
    width: int = EXPORT_BOARD_WIDTH,
    scale: float = EXPORT_SCALE,
) -> QImage:
    """Render the ranking board alone, as the image/PDF exports show it."""
    margin = 16
    height = _column_height(slot_count) + 2 * margin
    image = QImage(int(width * scale), int(height * scale), QImage.Format.Format_ARGB32)
    image.fill(QColor(EXPORT_BACKGROUND))
    painter = QPainter(image)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
    painter.scale(scale, scale)
    column = QRectF(margin, margin, width - 2 * margin, height - 2 * margin)
    _paint_ranking_column(painter, column, title, items, slot_count)
    painter.end()
    return image


class RankingBoardWidget(QWidget):
    """Ranking board and stack side by side, with cross-column card dragging."""

    boardChanged = Signal(object)

    MARGIN = 16
    COLUMN_GAP = 32
    RANKING_SHARE = 0.55

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._board = BoardState()
        self._title = DEFAULT_BOARD_TITLE
        self._word_count = 0
        self._session = DragSession()
        self._press_candidate: str | None = None
        self._press_pos: QPointF | None = None
        self._grab_offset = QPointF(0, 0)
        self._drag_pos = QPointF(0, 0)
        self._focus_id: str | None = None
        self._key_target: str | None = None
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Minimum)
        self._update_minimum_height()

    @property
    def board(self) -> BoardState:
        return self._board

    @property
    def session(self) -> DragSession:
        return self._session

    def set_board(self, board: BoardState, word_count: int) -> None:
        self._board = board
        self._word_count = word_count
        self._update_minimum_height()
        self.update()

    def set_title(self, title: str) -> None:
        self._title = title
        self.update()

    def slot_count(self) -> int:
        return ranking_slot_count(self._word_count, len(self._board.ranking))

    def _update_minimum_height(self) -> None:
        rows = max(self.slot_count(), len(self._board.stack))
        # One spare row so a card can be dropped below the last stack card.
        self.setMinimumHeight(int(_column_height(rows + 1) + 2 * self.MARGIN))

    def _column_rects(self) -> dict[str, QRectF]:
        usable = max(200.0, self.width() - 2 * self.MARGIN - self.COLUMN_GAP)
        ranking_width = usable * self.RANKING_SHARE
        height = self.height() - 2 * self.MARGIN
        ranking = QRectF(self.MARGIN, self.MARGIN, ranking_width, height)
        stack = QRectF(ranking.right() + self.COLUMN_GAP, self.MARGIN, usable - ranking_width, height)
        return {RANKING: ranking, STACK: stack}

    def _card_rect(self, container: str, index: int) -> QRectF:
        indent = RANK_NUMBER_WIDTH if container == RANKING else 0.0
        return _row_rect(self._column_rects()[container], index, indent)

    def _item_at(self, pos: QPointF) -> tuple[str, QRectF] | None:
        for container in CONTAINERS:
            for index, item in enumerate(self._board.items_in(container)):
                rect = self._card_rect(container, index)
                if rect.contains(pos):
                    return item.id, rect
        return None

    def _ghost_rect(self) -> QRectF:
        container = self._board.find_container(self._session.active_id) or STACK
        width = self._card_rect(container, 0).width()
        return QRectF(self._drag_pos - self._grab_offset, QSizeF(width, ROW_HEIGHT))

    def _resolve_drop_target(self, pos: QPointF) -> tuple[str | None, bool]:
        """Pick the card nearest the dragged card inside the hovered column.

        An empty column resolves to the column itself; the gap between
        columns resolves to nothing.
        """
        ghost = self._ghost_rect()
        for container, column in self._column_rects().items():
            if not (column.left() <= pos.x() <= column.right()):
                continue
            items = self._board.items_in(container)
            if not items:
                return container, False

            def distance(index: int) -> float:
                delta = self._card_rect(container, index).center() - ghost.center()
                return math.hypot(delta.x(), delta.y())

            nearest = min(range(len(items)), key=distance)
            row = self._card_rect(container, nearest)
            return items[nearest].id, is_pointer_below(ghost.top(), row.top(), row.height())
        return None, False

    @staticmethod
    def _event_pos(event) -> QPointF:
        """Return event position as QPointF across Qt6 API variants."""
        try:
            return event.position()
        except AttributeError:
            return QPointF(event.pos())

    def _reset_press(self) -> None:
        self._press_candidate = None
        self._press_pos = None

    def _apply_board(self, board: BoardState) -> None:
        if board != self._board:
            self._board = board
            self._update_minimum_height()
            self.boardChanged.emit(board)
        self.update()

    def begin_drag(self, item_id: str, pos: QPointF, grab_offset: QPointF | None = None) -> None:
        if grab_offset is not None:
            self._grab_offset = grab_offset
        self._session = drag_start(self._board, item_id)
        self._drag_pos = pos
        if self._session.is_dragging:
            self._focus_id = item_id

    def update_drag(self, pos: QPointF) -> None:
        self._drag_pos = pos
        target, below = self._resolve_drop_target(pos)
        self._apply_board(drag_over(self._session, self._board, target, below))

    def finish_drag(self, pos: QPointF) -> None:
        self._drag_pos = pos
        target, _below = self._resolve_drop_target(pos)
        self._session, board = drag_end(self._session, self._board, target)
        self._reset_press()
        self._apply_board(board)

    def cancel_drag(self) -> None:
        """Stop dragging and leave the card where it was last moved."""
        self._session = DragSession()
        self._key_target = None
        self._reset_press()
        self.update()

    @property
    def focused_id(self) -> str | None:
        """Card under the keyboard cursor, falling back to the first card."""
        if self._focus_id is not None and self._board.find_item(self._focus_id) is not None:
            return self._focus_id
        cards = self._board.ranking + self._board.stack
        return cards[0].id if cards else None

    def set_focused_card(self, item_id: str | None) -> None:
        self._focus_id = item_id
        self.update()

    def begin_keyboard_drag(self) -> None:
        item_id = self.focused_id
        if item_id is None:
            return
        self._grab_offset = QPointF(0, 0)
        self.begin_drag(item_id, QPointF(0, 0))
        if self._session.is_dragging:
            self._key_target = item_id
            self._place_keyboard_ghost()
            self.update()

    def finish_keyboard_drag(self) -> None:
        """Drop the dragged card on the keyboard target."""
        self._session, board = drag_end(self._session, self._board, self._key_target)
        self._key_target = None
        self._reset_press()
        self._apply_board(board)

    def _step_keyboard_row(self, delta: int) -> None:
        """Move the cursor, or the drop target while dragging, within its column."""
        current = self._key_target if self._session.is_dragging else self.focused_id
        container = self._board.find_container(current) if current is not None else None
        if container is None:
            return
        items = self._board.items_in(container)
        index = min(max(_index_of(items, current) + delta, 0), len(items) - 1)
        if self._session.is_dragging:
            self._key_target = items[index].id
            self._place_keyboard_ghost()
        else:
            self._focus_id = items[index].id
        self.update()

    def _switch_keyboard_column(self) -> None:
        """Jump to the other column; while dragging, carry the card across."""
        if not self._session.is_dragging:
            current = self.focused_id
            container = self._board.find_container(current) if current is not None else None
            if container is None:
                return
            other = STACK if container == RANKING else RANKING
            items = self._board.items_in(other)
            if items:
                index = min(_index_of(self._board.items_in(container), current), len(items) - 1)
                self._focus_id = items[index].id
                self.update()
            return

        if self._key_target is None:
            return
        active_id = self._session.active_id
        container = self._board.find_container(active_id)
        other = STACK if container == RANKING else RANKING
        index = _index_of(self._board.items_in(container), self._key_target)
        targets = self._board.items_in(other)
        over_id = targets[index].id if 0 <= index < len(targets) else other
        self._apply_board(drag_over(self._session, self._board, over_id))
        self._key_target = active_id
        self._place_keyboard_ghost()

    def _place_keyboard_ghost(self) -> None:
        container = self._board.find_container(self._key_target)
        if container is None:
            return
        index = _index_of(self._board.items_in(container), self._key_target)
        self._drag_pos = self._card_rect(container, index).topLeft() + QPointF(8, 8)

    def mousePressEvent(self, event) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            pos = self._event_pos(event)
            hit = self._item_at(pos)
            if hit is not None:
                self._press_candidate, rect = hit
                self._focus_id = self._press_candidate
                self._press_pos = pos
                self._grab_offset = pos - rect.topLeft()
            else:
                self._reset_press()
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:  # noqa: N802
        if self._press_candidate is not None and (event.buttons() & Qt.MouseButton.LeftButton):
            pos = self._event_pos(event)
            if not self._session.is_dragging:
                if (pos - self._press_pos).manhattanLength() < DRAG_ACTIVATION_DISTANCE:
                    return
                self.begin_drag(self._press_candidate, pos)
                if not self._session.is_dragging:
                    self._reset_press()
                    return
            self.update_drag(pos)
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton and self._session.is_dragging:
            self.finish_drag(self._event_pos(event))
            event.accept()
            return
        self._reset_press()
        super().mouseReleaseEvent(event)

    def keyPressEvent(self, event) -> None:  # noqa: N802
        key = event.key()
        if key == Qt.Key.Key_Escape and self._session.is_dragging:
            self.cancel_drag()
            event.accept()
            return
        if key in (Qt.Key.Key_Space, Qt.Key.Key_Return, Qt.Key.Key_Enter):
            if self._session.is_dragging:
                self.finish_keyboard_drag()
            else:
                self.begin_keyboard_drag()
            event.accept()
            return
        if key in (Qt.Key.Key_Up, Qt.Key.Key_Down):
            self._step_keyboard_row(-1 if key == Qt.Key.Key_Up else 1)
            event.accept()
            return
        if key in (Qt.Key.Key_Left, Qt.Key.Key_Right):
            self._switch_keyboard_column()
            event.accept()
            return
        super().keyPressEvent(event)

    def paintEvent(self, event) -> None:  # noqa: N802
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        columns = self._column_rects()
        faded_id = self._session.active_id

        _paint_ranking_column(painter, columns[RANKING], self._title, self._board.ranking, self.slot_count(), faded_id)

        stack_column = columns[STACK]
        painter.setPen(_pen(QColor("#4b5563"), 2))
        painter.setBrush(QColor(STACK_COLOR))
        painter.drawRoundedRect(stack_column, 14, 14)
        header_font = QFont()
        header_font.setPixelSize(22)
        header_font.setBold(True)
        painter.setFont(header_font)
        painter.setPen(QColor("#e5e7eb"))
        painter.drawText(
            QRectF(stack_column.left(), stack_column.top(), stack_column.width(), HEADER_HEIGHT),
            int(Qt.AlignmentFlag.AlignCenter),
            f"STACK ({len(self._board.stack)})",
        )
        for index, item in enumerate(self._board.stack):
            _paint_word_card(painter, self._card_rect(STACK, index), item.text, 0.4 if item.id == faded_id else 1.0)

        if self._session.is_dragging:
            item = self._board.find_item(self._session.active_id)
            if item is not None:
                _paint_word_card(painter, self._ghost_rect(), item.text, 0.9)

        cursor_id = self._key_target if self._session.is_dragging else self.focused_id
        cursor_container = self._board.find_container(cursor_id) if cursor_id is not None else None
        if self.hasFocus() and cursor_container is not None:
            index = _index_of(self._board.items_in(cursor_container), cursor_id)
            painter.setPen(_pen(QColor("#38bdf8"), 3, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRoundedRect(self._card_rect(cursor_container, index).adjusted(-3, -3, 3, 3), 8, 8)
        painter.end()


def _build_app_icon() -> QIcon:
    """Return a drawn podium icon."""
    pixmap = QPixmap(64, 64)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(QColor("#facc15"))
    painter.drawRoundedRect(22, 14, 20, 44, 3, 3)
    painter.setBrush(QColor("#d1d5db"))
    painter.drawRoundedRect(4, 26, 18, 32, 3, 3)
    painter.setBrush(QColor("#d97706"))
    painter.drawRoundedRect(42, 34, 18, 24, 3, 3)
    painter.end()
    return QIcon(pixmap)


class PopWordWindow(QMainWindow):
    EXPORT_LABELS = {"png": "PNG", "pdf": "PDF", "cloud": "word cloud"}

    def __init__(
        self,
        export_dir: Path,
        title: str = DEFAULT_BOARD_TITLE,
        initial_text: str = "",
        rng: random.Random | None = None,
        app_icon: QIcon | None = None,
    ):
        super().__init__()
        self.export_dir = export_dir
        self.board = BoardState()
        self._rng = rng or random.Random()
        self._word_count = 0
        self._export_pool = QThreadPool(self)
        self._export_pool.setMaxThreadCount(1)
        self._active_export_workers: set[ExportWorker] = set()
        self._export_in_progress = False
        self._sync_timer = QTimer(self)
        self._sync_timer.setSingleShot(True)
        self._sync_timer.setInterval(TEXT_SYNC_DELAY_MS)
        self._sync_timer.timeout.connect(self._sync_items_with_text)

        self.setWindowTitle("popword")
        if app_icon is not None:
            self.setWindowIcon(app_icon)
        self.resize(1280, 900)

        help_label = QLabel(render_how_to_use_html())
        help_label.setTextFormat(Qt.TextFormat.RichText)
        help_label.setWordWrap(True)
        help_label.setStyleSheet("padding: 6px 10px; border: 1px solid #4b5563; border-radius: 8px;")

        self.input_edit = QPlainTextEdit()
        self.input_edit.setPlaceholderText("Type words here, one per line...")
        self.input_edit.textChanged.connect(self._on_input_text_changed)

        left_panel = QWidget()
        left_layout = QVBoxLayout(left_panel)
        left_layout.setContentsMargins(0, 0, 0, 0)
        left_layout.addWidget(help_label)
        left_layout.addWidget(self.input_edit, 1)

        self.title_edit = QLineEdit(title)
        self.title_edit.setPlaceholderText("Board title")
        self.title_edit.textChanged.connect(self._on_title_changed)

        shuffle_btn = QPushButton("Shuffle stack")
        shuffle_btn.clicked.connect(self._shuffle_stack)
        copy_btn = QPushButton("Copy text")
        copy_btn.clicked.connect(self._export_text)
        self.png_btn = QPushButton("PNG")
        self.png_btn.clicked.connect(self._export_png)
        self.pdf_btn = QPushButton("PDF")
        self.pdf_btn.clicked.connect(self._export_pdf)
        self.cloud_btn = QPushButton("Word cloud")
        self.cloud_btn.clicked.connect(self._export_word_cloud)

        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(0, 0, 0, 0)
        top_bar.addWidget(QLabel("Title:"))
        top_bar.addWidget(self.title_edit, 1)
        top_bar.addWidget(shuffle_btn)
        top_bar.addWidget(copy_btn)
        top_bar.addWidget(self.png_btn)
        top_bar.addWidget(self.pdf_btn)
        top_bar.addWidget(self.cloud_btn)

        self.board_widget = RankingBoardWidget()
        self.board_widget.set_title(title)
        self.board_widget.boardChanged.connect(self._on_board_changed)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.board_widget)

        right_panel = QWidget()
        right_layout = QVBoxLayout(right_panel)
        right_layout.setContentsMargins(0, 0, 0, 0)
        right_layout.addLayout(top_bar)
        right_layout.addWidget(scroll, 1)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(left_panel)
        splitter.addWidget(right_panel)
        splitter.setChildrenCollapsible(False)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)
        self.setCentralWidget(splitter)
        self.statusBar().showMessage("Ready")

        if initial_text:
            self.input_edit.setPlainText(initial_text)
            self._sync_items_with_text()

    @property
    def title(self) -> str:
        return self.title_edit.text()

    def _on_input_text_changed(self) -> None:
        self._sync_timer.start()

    def _sync_items_with_text(self) -> None:
        """Reconcile cards with the text box contents."""
        self._sync_timer.stop()
        lines = split_input_lines(self.input_edit.toPlainText())
        self._word_count = len(lines)
        self.board = reconcile_items(lines, self.board)
        self.board_widget.set_board(self.board, self._word_count)

    def _on_board_changed(self, board: BoardState) -> None:
        self.board = board

    def _on_title_changed(self, text: str) -> None:
        self.board_widget.set_title(text)

    def _shuffle_stack(self) -> None:
        self.board = shuffle_stack(self.board, self._rng)
        self.board_widget.set_board(self.board, self._word_count)
        self.statusBar().showMessage("Stack shuffled", STATUS_MESSAGE_MS)

    def _export_text(self) -> None:
        text = ranking_as_text(self.title, self.board.ranking)
        try:
            self._set_plain_text_clipboard(text)
        except Exception as exc:
            self._report_export_failure("Copy failed", str(exc))
            return
        self.statusBar().showMessage("Copied ranking to clipboard", STATUS_MESSAGE_MS)

    def _set_plain_text_clipboard(self, text: str) -> None:
        """Set clipboard text via Qt, with platform CLI fallback for reliability."""
        clipboard = QApplication.clipboard()
        clipboard.setText(text, QClipboard.Mode.Clipboard)
        if clipboard.supportsSelection():
            clipboard.setText(text, QClipboard.Mode.Selection)

        try:
            if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
                subprocess.run(["wl-copy"], input=text, text=True, check=False)
                return
            if os.environ.get("DISPLAY") and shutil.which("xclip"):
                subprocess.run(["xclip", "-selection", "clipboard"], input=text, text=True, check=False)
        except OSError:
            # Qt clipboard already received the text.
            pass

    def _ranking_image_bytes(self) -> bytes:
        image = render_ranking_image(self.title, self.board.ranking, self.board_widget.slot_count())
        return qimage_to_png_bytes(image)

    def _export_png(self) -> None:
        self._start_export("png", RANKING_PNG_NAME, self._ranking_image_bytes)

    def _export_pdf(self) -> None:
        self._start_export("pdf", RANKING_PDF_NAME, self._ranking_image_bytes)

    def _export_word_cloud(self) -> None:
        if not self.board.ranking:
            QMessageBox.information(
                self,
                "Nothing to export",
                "Place at least one word on the ranking board before creating a word cloud.",
            )
            self.statusBar().showMessage("Word cloud needs ranked words", STATUS_MESSAGE_MS)
            return

        def cloud_bytes() -> bytes:
            measurer = QtTextMeasurer()
            glyphs = layout_word_cloud(self.board.ranking, CLOUD_CANVAS_SIZE, measurer, self._rng)
            return qimage_to_png_bytes(render_word_cloud_image(glyphs, CLOUD_CANVAS_SIZE, measurer))

        self._start_export("cloud", WORD_CLOUD_PNG_NAME, cloud_bytes)

    def _start_export(self, kind: str, file_name: str, render: Callable[[], bytes]) -> None:
        """Render on the GUI thread, then write the file in a worker."""
        if self._export_in_progress:
            self.statusBar().showMessage("Export already in progress", STATUS_MESSAGE_MS)
            return
        output_path = self.export_dir / file_name
        try:
            png_bytes = render()
        except Exception as exc:
            self._report_export_failure(f"{self.EXPORT_LABELS[kind]} export failed", str(exc))
            return

        self._set_export_busy(True)
        worker = ExportWorker(kind, output_path, png_bytes, self.title)
        self._active_export_workers.add(worker)
        worker.signals.finished.connect(
            lambda kind_text, path_text, error_text, current_worker=worker: self._on_export_finished(
                current_worker,
                kind_text,
                path_text,
                error_text,
            )
        )
        self._export_pool.start(worker)
        self.statusBar().showMessage(f"Writing {output_path.name}...")

    def _set_export_busy(self, busy: bool) -> None:
        self._export_in_progress = busy
        for button in (self.png_btn, self.pdf_btn, self.cloud_btn):
            button.setEnabled(not busy)

    def _on_export_finished(self, worker: ExportWorker, kind: str, output_path_text: str, error_text: str) -> None:
        """Finalize async export and report result."""
        self._active_export_workers.discard(worker)
        self._set_export_busy(False)
        label = self.EXPORT_LABELS.get(kind, kind)
        if error_text:
            self._report_export_failure(f"{label} export failed", f"Could not save:\n{output_path_text}\n\n{error_text}")
            return
        self.statusBar().showMessage(f"Saved {label}: {output_path_text}", STATUS_MESSAGE_MS)

    def _report_export_failure(self, heading: str, details: str) -> None:
        print(f"popword: {heading}: {details}", file=sys.stderr)
        QMessageBox.critical(self, heading, details)
        self.statusBar().showMessage(heading, STATUS_MESSAGE_MS)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="popword",
        description="Type words, drag them onto a ranking board, and export the result.",
    )
    parser.add_argument(
        "words_file",
        nargs="?",
        default=None,
        help="Optional text file whose lines pre-fill the word box.",
    )
    parser.add_argument("--title", default=DEFAULT_BOARD_TITLE, help="Initial ranking board title.")
    parser.add_argument(
        "--export-dir",
        default=None,
        help="Directory for exported files (default: ~/.popword.cfg path, or current directory).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for shuffling and word-cloud layout.")
    args = parser.parse_args()

    initial_text = ""
    if args.words_file is not None:
        words_path = Path(args.words_file).expanduser()
        if not words_path.is_file():
            print(f"Words file does not exist: {words_path}", file=sys.stderr)
            return 2
        initial_text = words_path.read_text(encoding="utf-8", errors="replace")

    export_dir = Path(args.export_dir).expanduser() if args.export_dir is not None else _load_default_export_dir()
    if not export_dir.is_dir():
        print(f"Export directory does not exist: {export_dir}", file=sys.stderr)
        return 2

    app = QApplication(sys.argv)
    app.setApplicationName("popword")
    app_icon = _build_app_icon()
    app.setWindowIcon(app_icon)

    rng = random.Random(args.seed)
    window = PopWordWindow(export_dir.resolve(), args.title, initial_text, rng, app_icon)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
