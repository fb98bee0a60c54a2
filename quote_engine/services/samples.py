"""Sample quote forms shipped with the package.

Each sample is a JSON file in quote_engine/samples holding a complete quote
form: name, currency, parameters, file connections and seed form values.
Samples are validated through the same schema as user-authored forms, so a
broken sample fails loudly with a ValueError.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from quote_engine.schemas.form import QuoteFormCreate

SAMPLES_DIR = Path(__file__).resolve().parents[1] / "samples"


def _load_one(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Top-level JSON must be an object in {path}")
    return data


def _sample_paths(samples_dir: Path | None = None) -> List[Path]:
    base = samples_dir or SAMPLES_DIR
    if not base.exists():
        return []
    return sorted(p for p in base.iterdir() if p.is_file() and p.suffix.lower() == ".json")


def list_samples(samples_dir: Path | None = None) -> List[Dict[str, str]]:
    out = []
    for path in _sample_paths(samples_dir):
        data = _load_one(path)
        out.append(
            {
                "name": str(data.get("name") or path.stem),
                "title": str(data.get("title") or path.stem),
                "description": str(data.get("description") or ""),
            }
        )
    return out


def load_sample(name: str, samples_dir: Path | None = None) -> QuoteFormCreate:
    """
    Load and validate one sample form by name.

    Raises:
        ValueError: If no sample has that name or its content is invalid
    """
    for path in _sample_paths(samples_dir):
        data = _load_one(path)
        if str(data.get("name") or path.stem) != name:
            continue
        try:
            return QuoteFormCreate.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid sample '{name}' in {path.name}: {e}")
    raise ValueError(f"Unknown sample '{name}'")
