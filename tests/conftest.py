import random

import pytest


@pytest.fixture
def names_file(tmp_path):
    path = tmp_path / "students.txt"
    path.write_text("Alice\n\nBob\n  \nCarol\n", encoding="utf-8")
    return path


@pytest.fixture
def rng():
    return random.Random(2024)
