import pytest

from fakes import clear_id_counter


@pytest.fixture(autouse=True)
def _fresh_ids():
    clear_id_counter()
    yield
