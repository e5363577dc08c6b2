import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent


@pytest.mark.skipif(sys.version_info < (3, 11), reason="tomllib is 3.11+")
def test_install_ships_no_top_level_modules() -> None:
    import tomllib

    pyproject = tomllib.loads((ROOT / "pyproject.toml").read_text())

    assert pyproject["tool"]["setuptools"]["packages"] == []
    assert "py-modules" not in pyproject["tool"]["setuptools"]
    assert "scripts" not in pyproject["project"]


def test_image_runs_from_backend() -> None:
    dockerfile = (ROOT / "Dockerfile").read_text().splitlines()

    assert "WORKDIR /app/backend" in dockerfile
    assert dockerfile[-1] == 'CMD ["python", "main.py"]'
