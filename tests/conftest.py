# Standard Library
import itertools
import os

# Qt must pick a headless platform before PySide6 is first imported.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Third Party
import pytest


#============================================
def make_id_factory(prefix="id"):
    """Return a callable producing predictable, unique ids."""
    numbers = itertools.count(1)
    return lambda: f"{prefix}-{next(numbers)}"


#============================================
@pytest.fixture
def id_factory():
    return make_id_factory()


#============================================
@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app
