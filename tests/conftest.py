"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from repolens.utils import logging as logging_utils

SAMPLE_REPORT = """```markdown
# demo/engine Technical Deep Dive

A compact storage engine with a write-ahead log and an LSM tree.

## 1. Architecture and Technology Stack
### Architecture Overview
```
graph TD
Core[Core] --> Log[WAL]
```

## 2. Hard Problems
Run `make bench` to reproduce.

```bash
npm install foo
```

## 3. Key Flows
```
sequenceDiagram
Client->>Node: write
```

## 2. Hard Problems
Duplicate heading on purpose.
```"""


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in list(os.environ):
        if name.startswith("REPOLENS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REPOLENS_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture(autouse=True)
def reset_installed_logging():
    logging_utils._remove_installed(logging.getLogger())
    logging_utils._log_path = None
    yield
    logging_utils._remove_installed(logging.getLogger())
    logging_utils._log_path = None


@pytest.fixture
def sample_report() -> str:
    return SAMPLE_REPORT
