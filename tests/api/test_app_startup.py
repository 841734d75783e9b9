import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.parametrize(
    "module",
    ["main", "app.config", "app.schemas", "app.services.year_resolver", "app.utils.json_parser"],
)
def test_module_imports_in_fresh_interpreter(module):
    """Each entry point must import on its own, without relying on import order."""
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=PROJECT_ROOT,
        env={**os.environ, "LOG_TO_FILE": "false"},
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr


def test_create_app_registers_event_routes(app):
    paths = {route.path for route in app.routes}
    assert {
        "/api/",
        "/api/events/generate",
        "/api/events/parse",
        "/api/events/resolve-years",
    } <= paths
