"""Project scaffolding for `iku new`."""

from __future__ import annotations

from pathlib import Path

_IKU_TOML_TEMPLATE = """\
[package]
name = "{name}"
version = "0.1.0"
authors = []

[format]
indent = 4

[diagnostics]
color = true
"""

_MAIN_IKU_TEMPLATE = """\
func main() {
    greeting := "Hello from Iku!"
    print(greeting)
}
"""

_GITIGNORE = """\
__pycache__/
.iku/
"""

_README_TEMPLATE = """\
# {name}

An Iku project.

## Check

```bash
iku check
```

## Format

```bash
iku format
```
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create a new Iku project directory. Returns the project path."""
    base = parent or Path.cwd()
    project_dir = base / name

    if project_dir.exists():
        raise FileExistsError(f"Directory '{name}' already exists")

    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True)

    (project_dir / "iku.toml").write_text(_IKU_TOML_TEMPLATE.format(name=name))
    (src_dir / "main.iku").write_text(_MAIN_IKU_TEMPLATE)
    (project_dir / ".gitignore").write_text(_GITIGNORE)
    (project_dir / "README.md").write_text(_README_TEMPLATE.format(name=name))

    return project_dir
