"""Project scaffolding for `plc new`."""

from __future__ import annotations

from pathlib import Path

_PLC_TOML_TEMPLATE = """\
[package]
name = "{name}"
version = "0.1.0"
authors = []
license = ""

[run]
analyze = true
recursion_limit = 10000

[diagnostics]
color = true
"""

_MAIN_PLC_TEMPLATE = """\
LET greeting: String = "Hello from Plc!";

DEF main(): Integer DO
    print(greeting);
    RETURN 0;
END
"""

_GITIGNORE = """\
__pycache__/
.plc/
"""

_README_TEMPLATE = """\
# {name}

A Plc project.

## Run

```bash
plc run src/main.plc
```

## Check

```bash
plc check
```
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create a new Plc project directory. Returns the project path."""
    base = parent or Path.cwd()
    project_dir = base / name

    if project_dir.exists():
        raise FileExistsError(f"Directory '{name}' already exists")

    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True)

    (project_dir / "plc.toml").write_text(_PLC_TOML_TEMPLATE.format(name=name))
    (src_dir / "main.plc").write_text(_MAIN_PLC_TEMPLATE)
    (project_dir / ".gitignore").write_text(_GITIGNORE)
    (project_dir / "README.md").write_text(_README_TEMPLATE.format(name=name))

    return project_dir
