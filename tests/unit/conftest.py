"""Fixtures shared by API unit tests."""

from __future__ import annotations

import pytest

from tests.helpers.pipeline import Pipeline, build_pipeline


@pytest.fixture
def pipeline() -> Pipeline:
    """Wire the real pipeline objects around in-memory collaborators."""
    return build_pipeline()
