from __future__ import annotations

import logfire
import pytest


@pytest.fixture(autouse=True, scope="session")
def _local_logfire() -> None:
    logfire.configure(send_to_logfire=False, console=False)
