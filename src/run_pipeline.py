"""Pipeline runner for customer retention analytics."""
from __future__ import annotations

import argparse
import importlib
import sys
from pathlib import Path
from typing import Callable, Dict, Iterable, List

import yaml

from pipeline.task import Task
from utils.io import get_paths, logger

PATHS = get_paths()
SRC_DIR = PATHS.base / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

CONFIG_PATH = PATHS.configs / "artifacts.yml"
LAYERS = ("bronze", "silver", "gold")


def _resolve_entrypoint(entrypoint: str) -> Callable[[], object]:
    if ":" not in entrypoint:
        raise ValueError(f"Entrypoint '{entrypoint}' must be 'module:function'")
    module_name, func_name = entrypoint.split(":", maxsplit=1)
    module = importlib.import_module(module_name)
    func = getattr(module, func_name, None)
    if not callable(func):
        raise ValueError(f"Entrypoint '{entrypoint}' is not a callable")
    return func


def _load_config(path: Path) -> Dict[str, dict]:
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        config = yaml.safe_load(fh) or {}
    return config.get("artifacts", {}) or {}


def _build_tasks(artifact_specs: Dict[str, dict], base: Path | None = None) -> Dict[str, Task]:
    # Map outputs to artifact name for dependency resolution
    output_map: Dict[str, str] = {}
    for name, spec in artifact_specs.items():
        for output in spec.get("outputs", []) or []:
            if output in output_map:
                raise ValueError(
                    f"Output '{output}' declared by both '{output_map[output]}' and '{name}'"
                )
            output_map[output] = name

    tasks: Dict[str, Task] = {}
    for name, spec in artifact_specs.items():
        entrypoint = spec.get("entrypoint")
        if not entrypoint:
            raise ValueError(f"Artifact '{name}' missing 'entrypoint'")
        layer = spec.get("layer")
        if layer is not None and layer not in LAYERS:
            raise ValueError(f"Artifact '{name}' has unknown layer '{layer}'")
        tasks[name] = Task(
            name=name,
            run=_resolve_entrypoint(entrypoint),
            layer=layer,
            inputs=spec.get("inputs", []),
            outputs=spec.get("outputs", []),
            requires=[],
            base=base or PATHS.base,
        )

    # Attach dependencies
    for name, spec in artifact_specs.items():
        deps: List[Task] = []
        for input_path in spec.get("inputs", []) or []:
            dependency_name = output_map.get(input_path)
            if dependency_name and dependency_name != name:
                deps.append(tasks[dependency_name])
        tasks[name].requires = deps
    return tasks


def select_targets(
    tasks: Dict[str, Task],
    targets: Iterable[str] | None = None,
    layer: str | None = None,
) -> List[str]:
    if targets:
        unknown = [target for target in targets if target not in tasks]
        if unknown:
            raise KeyError(f"Unknown artifact(s) {unknown}")
        return list(targets)
    if layer:
        if layer not in LAYERS:
            raise KeyError(f"Unknown layer '{layer}'")
        return [name for name, task in tasks.items() if task.layer == layer]
    return list(tasks)


def run_pipeline(
    targets: Iterable[str] | None = None,
    *,
    layer: str | None = None,
    config_path: Path = CONFIG_PATH,
) -> Dict[str, Task]:
    artifact_specs = _load_config(config_path)
    if not artifact_specs:
        raise ValueError(f"No artifacts defined in {config_path}")

    tasks = _build_tasks(artifact_specs)
    for name in select_targets(tasks, targets, layer):
        tasks[name].execute()
    return tasks


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run customer retention analytics pipeline")
    parser.add_argument(
        "artifacts",
        nargs="*",
        help="Specific artifacts to build (default: all).",
    )
    parser.add_argument("--layer", choices=LAYERS, default=None, help="Build every artifact of one layer.")
    parser.add_argument("--list", action="store_true", help="List configured artifacts and exit.")
    args = parser.parse_args(argv)

    if args.list:
        for name, spec in _load_config(CONFIG_PATH).items():
            print(f"{spec.get('layer', '-'):<7} {name:<28} {spec.get('entrypoint')}")
        return

    logger.info("Starting pipeline (targets=%s, layer=%s)", args.artifacts or "ALL", args.layer or "-")
    run_pipeline(args.artifacts or None, layer=args.layer)
    logger.info("Pipeline finished")


if __name__ == "__main__":
    main()
