import pytest

from reference import HI_PROGRAM


@pytest.fixture
def hi_program():
    return HI_PROGRAM
