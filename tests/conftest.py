import pytest

from gwadmin.metrics import get_metrics
from gwadmin.registry import reset_client_registry


@pytest.fixture(autouse=True)
def clean_process_state():
    """Each test starts with a fresh version registry and empty metrics."""
    reset_client_registry()
    get_metrics().reset()
    yield
    reset_client_registry()
    get_metrics().reset()
