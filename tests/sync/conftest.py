"""Fixtures for end-to-end synchronization runs against SQLite."""

from collections.abc import Callable
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from modelsync.config.models import ModelSyncConfig


@pytest.fixture
def make_db(tmp_path: Path) -> Callable[..., str]:
    """Create a SQLite database outside the project and return its URL."""

    def make(*statements: str, name: str = "shop.db") -> str:
        db_dir = tmp_path / "db"
        db_dir.mkdir(exist_ok=True)
        url = f"sqlite:///{db_dir / name}"
        engine = create_engine(url)
        with engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))
        engine.dispose()
        return url

    return make


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty C# project named Shop."""
    root = tmp_path / "Shop"
    root.mkdir()
    (root / "Shop.csproj").write_text("<Project />", encoding="utf-8")
    return root


@pytest.fixture
def config() -> ModelSyncConfig:
    """Default configuration with a small worker pool."""
    return ModelSyncConfig.model_validate({"concurrency": {"max_workers": 4}})
