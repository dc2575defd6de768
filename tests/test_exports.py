"""Tests for text, image, PDF and word-cloud export helpers."""

# Standard Library
import random

# Third Party
import pytest

# Local repo modules
import popword
from popword import BoardState, WordItem


#============================================
def test_ranking_as_text():
    ranking = [WordItem("1", "Ramen"), WordItem("2", "Sushi")]
    assert popword.ranking_as_text("Food", ranking) == "Food\n1. Ramen\n2. Sushi"


#============================================
def test_ranking_as_text_empty_ranking_keeps_title():
    assert popword.ranking_as_text("Empty", []) == "Empty\n"


#============================================
def test_shuffle_stack_permutes_only_the_stack():
    stack = tuple(WordItem(str(index), f"w{index}") for index in range(10))
    ranking = (WordItem("r", "ranked"),)
    board = BoardState(ranking=ranking, stack=stack)
    shuffled = popword.shuffle_stack(board, random.Random(3))
    assert shuffled.ranking == ranking
    assert sorted(shuffled.stack, key=lambda item: item.id) == sorted(stack, key=lambda item: item.id)
    assert shuffled.stack != stack
    assert board.stack == stack


#============================================
def test_shuffle_stack_small_stacks():
    assert popword.shuffle_stack(BoardState(), random.Random(0)) == BoardState()
    single = BoardState(stack=(WordItem("a", "A"),))
    assert popword.shuffle_stack(single, random.Random(0)) == single


#============================================
@pytest.mark.parametrize(
    "length, expected",
    [(5, 24), (19, 24), (20, 18), (25, 18), (26, 16), (30, 16), (31, 14), (34, 14), (35, 12)],
)
def test_card_font_pixel_size(length, expected):
    assert popword.card_font_pixel_size("w" * length) == expected


#============================================
def test_ranking_slot_count_has_minimum():
    assert popword.ranking_slot_count(0) == popword.MIN_BOARD_SLOTS
    assert popword.ranking_slot_count(3, 2) == 5
    assert popword.ranking_slot_count(8, 2) == 8


#============================================
def test_how_to_use_html_is_rendered_markdown():
    html_text = popword.render_how_to_use_html()
    assert "<ol>" in html_text
    assert "<strong>How to play</strong>" in html_text


#============================================
def test_build_ranking_pdf_rejects_empty_payload():
    with pytest.raises(ValueError):
        popword.build_ranking_pdf(b"")


#============================================
def test_render_ranking_image_and_pdf(qapp):
    ranking = [WordItem("1", "first"), WordItem("2", "second")]
    image = popword.render_ranking_image("Best", ranking, 5)
    assert image.width() == int(popword.EXPORT_BOARD_WIDTH * popword.EXPORT_SCALE)
    assert not image.isNull()

    png_bytes = popword.qimage_to_png_bytes(image)
    assert png_bytes.startswith(b"\x89PNG")

    pdf_bytes = popword.build_ranking_pdf(png_bytes, "Best")
    assert pdf_bytes.startswith(b"%PDF")


#============================================
def test_render_word_cloud_image(qapp):
    ranking = [WordItem("1", "alpha"), WordItem("2", "beta"), WordItem("3", "gamma")]
    measurer = popword.QtTextMeasurer()
    glyphs = popword.layout_word_cloud(ranking, popword.CLOUD_CANVAS_SIZE, measurer, random.Random(4))
    image = popword.render_word_cloud_image(glyphs, popword.CLOUD_CANVAS_SIZE, measurer)
    assert (image.width(), image.height()) == (1920, 1080)
    assert popword.qimage_to_png_bytes(image).startswith(b"\x89PNG")


#============================================
def test_qt_text_measurer_grows_with_font_size(qapp):
    measurer = popword.QtTextMeasurer()
    small = measurer("Ranking", 20)
    large = measurer("Ranking", 120)
    assert large[1] >= small[1]
    assert large[0] >= small[0]


#============================================
def test_export_worker_writes_pdf(tmp_path, qapp):
    image = popword.render_ranking_image("Title", [WordItem("1", "x")], 5)
    output = tmp_path / "out.pdf"
    worker = popword.ExportWorker("pdf", output, popword.qimage_to_png_bytes(image), "Title")
    results = []
    worker.signals.finished.connect(lambda *args: results.append(args))
    worker.run()
    assert output.read_bytes().startswith(b"%PDF")
    assert results == [("pdf", str(output), "")]


#============================================
def test_export_worker_reports_failure(tmp_path, qapp):
    output = tmp_path / "missing-dir" / "out.png"
    worker = popword.ExportWorker("png", output, b"\x89PNG")
    results = []
    worker.signals.finished.connect(lambda *args: results.append(args))
    worker.run()
    assert len(results) == 1
    kind, path_text, error_text = results[0]
    assert kind == "png"
    assert path_text == str(output)
    assert error_text
