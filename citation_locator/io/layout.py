"""
JSON persistence for source layouts and claim batches.
"""

import json
from pathlib import Path
from typing import List

from pydantic import TypeAdapter

from citation_locator.types import Claim, SourceLayout

_CLAIMS = TypeAdapter(List[Claim])


def load_layout(path: Path) -> SourceLayout:
    if not path.exists():
        raise FileNotFoundError(f"Layout not found: {path}")
    return SourceLayout.model_validate_json(path.read_text(encoding="utf-8"))


def save_layout(layout: SourceLayout, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(layout.model_dump_json(indent=2), encoding="utf-8")


def load_claims(path: Path) -> List[Claim]:
    """
    Load claims from JSON.

    Accepts either a list of claim objects or an object with a "claims" list.
    """
    if not path.exists():
        raise FileNotFoundError(f"Claims not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("claims", [])
    return _CLAIMS.validate_python(data)
