"""PyTest configuration shared by the reason test suite.

Provides a populated paper store, a default shell configuration, and keeps
the cached configuration and REASON_ environment variables from leaking
between tests.
"""

import os
import logging
import pytest
from reason.data.store import Paper, PaperStore
from reason.util.config import ShellConfig, reset_config

logger = logging.getLogger(__name__)

SAMPLE_PAPERS = [
    Paper(title="ShadowTutor: Distributed Partial Distillation for Mobile Video DNN Inference",
          authors=["Jae-Won Chung", "Jae-Yun Kim", "Soo-Mook Moon"], venue="ICPP", year=2020),
    Paper(title="Attention Is All You Need",
          authors=["Ashish Vaswani", "Noam Shazeer", "Niki Parmar", "Jakob Uszkoreit"],
          venue="NeurIPS", year=2017),
    Paper(title="Zeus: Understanding and Optimizing GPU Energy Consumption of DNN Training",
          authors=["Jie You", "Jae-Won Chung", "Mosharaf Chowdhury"], venue="NSDI", year=2023),
]


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point ~ at an empty directory and clear REASON_ variables."""
    for key in list(os.environ.keys()):
        if key.startswith("REASON_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    reset_config()
    yield
    reset_config()


@pytest.fixture
def store():
    """A store holding three papers."""
    return PaperStore([paper.model_copy(deep=True) for paper in SAMPLE_PAPERS])


@pytest.fixture
def shell_config(tmp_path):
    return ShellConfig(state_path=str(tmp_path / "state.yaml"),
                       history_path=str(tmp_path / "history"))
