from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


@dataclasses.dataclass(frozen=True)
class AppConfig:
    data_dir: Path = Path.home() / ".finanzas"
    inflation_file: Optional[Path] = None
    log_level: str = "INFO"
    llm_model: Optional[str] = None
    llm_temperature: float = 0.2


def load_app_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Read the JSON config file (if any) and apply environment overrides:
    FINANZAS_DATA_DIR, FINANZAS_LOG_LEVEL and HF_MODEL.
    """
    data = _read_json(path) if path else {}
    data_dir = os.environ.get("FINANZAS_DATA_DIR") or data.get("data_dir")
    inflation_file = data.get("inflation_file")
    return AppConfig(
        data_dir=Path(data_dir).expanduser() if data_dir else AppConfig.data_dir,
        inflation_file=Path(inflation_file).expanduser() if inflation_file else None,
        log_level=str(os.environ.get("FINANZAS_LOG_LEVEL") or data.get("log_level", "INFO")),
        llm_model=os.environ.get("HF_MODEL") or data.get("llm_model"),
        llm_temperature=float(data.get("llm_temperature", 0.2)),
    )


def _read_json(path: str | Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
