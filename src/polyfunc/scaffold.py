"""Writing project skeletons and generated services to disk."""

from __future__ import annotations

from pathlib import Path

from polyfunc.config import DEFAULT_CONFIG_FILE, Config
from polyfunc.logging import get_logger

logger = get_logger("scaffold")


def init_project(config: Config, root: str | Path = ".") -> Path:
    """Create the project folders and write the current config to polyfunc.json.

    Returns:
        Path of the written configuration file.
    """
    root = Path(root)
    for key in ("paths.services", "paths.templates"):
        rel = config.get(key)
        if rel:
            (root / rel).mkdir(parents=True, exist_ok=True)

    config_path = root / DEFAULT_CONFIG_FILE
    if not config.save_to(config_path):
        raise OSError(f"Could not write {config_path}")
    return config_path


def _render_readme(language: str, description: str, code: dict) -> str:
    instructions = code.get("instructions") or ""
    dependencies = code.get("dependencies") or []
    return (
        f"# Generated Service in {language}\n\n"
        f"## Description\n{description}\n\n"
        f"## Instructions\n{instructions}\n\n"
        f"## Dependencies\n" + "\n".join(str(d) for d in dependencies) + "\n"
    )


def write_service(
    code: dict, language: str, description: str, services_dir: str | Path
) -> Path:
    """Write generated files plus a README under ``<services_dir>/<language>-service``.

    Raises:
        ValueError: If a generated filename points outside the service directory.
    """
    service_path = Path(services_dir) / f"{language}-service"
    service_path.mkdir(parents=True, exist_ok=True)
    base = service_path.resolve()

    for entry in code.get("files") or []:
        target = (service_path / entry["filename"]).resolve()
        if base not in target.parents:
            raise ValueError(f"Refusing to write outside the service directory: {entry['filename']}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(entry.get("content", ""), encoding="utf-8")
        logger.debug("Wrote %s", target)

    (service_path / "README.md").write_text(
        _render_readme(language, description, code), encoding="utf-8"
    )
    return service_path
