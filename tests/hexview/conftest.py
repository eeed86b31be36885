"""Shared fixtures for hexview tests."""

from __future__ import annotations

import pytest

BUTTON_SOURCE = """export default function Button({ label }) {
  return <button className="px-4 py-2 rounded">{label}</button>;
}
"""

APP_SOURCE = """import Button from "@/components/Button";

export default function App() {
  return (
    <div className="p-8">
      <Button label="Click me" />
    </div>
  );
}
"""


@pytest.fixture
def project_files() -> dict[str, str]:
    """A two-module project: an App importing a Button through the alias."""
    return {"/App.jsx": APP_SOURCE, "/components/Button.jsx": BUTTON_SOURCE}
