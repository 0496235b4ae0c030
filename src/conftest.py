"""Global pytest fixtures."""

import pytest

from content.purge import PurgeConfig


@pytest.fixture
def purge_config():
    """Purge configuration pointing at a fake cache layer."""
    return PurgeConfig(
        base_url="https://example.com",
        purge_path="/purge",
        purge_key="secret123",
    )
