"""
Pytest configuration and shared fixtures
"""
import logging

import pytest

from homedash_sidecar.config import SidecarConfig, SidecarContext


@pytest.fixture
def config():
    """Configuration pointing at a test server"""
    return SidecarConfig(
        server='http://homedash.test',
        interval_seconds=60,
        sidecar_uuid='test-uuid-1234',
        label_prefix='homedash.',
    )


@pytest.fixture
def context(config):
    """Sidecar context with a test logger"""
    return SidecarContext(config=config, logger=logging.getLogger('homedash_sidecar.test'))
