import pytest

from fakes import Hub


@pytest.fixture
def hub() -> Hub:
    return Hub()
