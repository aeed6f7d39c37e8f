# Copyright 2019-2025 ETH Zurich and the DaCe authors. All rights reserved.
"""
pytest configuration file.
"""
import pytest

from gradgraph.config import temporary_config


def pytest_configure(config):
    config.addinivalue_line("markers", "autodiff: tests of backward graph construction")


@pytest.fixture(autouse=True)
def isolated_config():
    """ Restores configuration changes made by a test. """
    with temporary_config():
        yield
