"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

import refsheet.config

WIDGET_SRC = """\
use std::fmt;

pub struct Widget {
    size: u32,
}

pub enum Shape {
    Circle,
    Square,
}

pub trait Drawable {
    fn draw(&self);
    fn area(&self) -> f64 {
        0.0
    }
    type Output;
}

impl Widget {
    const LIMIT: u32 = 4;

    pub fn new(size: u32) -> Self {
        Widget { size }
    }

    fn resize(&mut self, size: u32) {
        self.size = size;
    }
}

impl Drawable for Widget {
    type Output = ();

    fn draw(&self) {}
}

impl fmt::Display for Widget {
    fn fmt(&self, f: &mut fmt::Formatter) -> fmt::Result {
        write!(f, "{}", self.size)
    }
}

pub fn render(w: &Widget) {
    fn helper() {}
    helper();
    w.draw();
}
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user-level config and REFSHEET_* variables out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr(refsheet.config, "_GLOBAL_CONFIG_PATH", home / "config.toml")
    for var in (
        "REFSHEET_OUTPUT",
        "REFSHEET_EXCLUDE",
        "REFSHEET_FOLLOW_LINKS",
        "REFSHEET_WORKERS",
        "REFSHEET_LOG_LEVEL",
        "OUT_DIR",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def rust_project(tmp_path: Path) -> Path:
    """Create a small crate with one valid module, one broken module and a target dir."""
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.rs").write_text("fn main() {\n    println!(\"hi\");\n}\n", encoding="utf-8")
    (src / "widget.rs").write_text(WIDGET_SRC, encoding="utf-8")
    (src / "broken.rs").write_text("fn broken(\n", encoding="utf-8")
    (src / "notes.txt").write_text("fn not_rust() {}\n", encoding="utf-8")

    target = tmp_path / "target" / "debug"
    target.mkdir(parents=True)
    (target / "generated.rs").write_text("fn generated() {}\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def widget_source() -> str:
    return WIDGET_SRC
