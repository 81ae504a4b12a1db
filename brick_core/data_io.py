"""
Data input/output for the bio bricks engine.
Reads bulk quantity sources (JSON objects, CSV tables) and builds chart frames.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd

from brick_core import SETTING_NAMES

logger = logging.getLogger(__name__)


def parse_quantity_json(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Decode a JSON object of material key -> quantity"""

    if isinstance(raw, bytes):
        raw = raw.decode('utf-8')

    decoded = json.loads(raw)
    if not isinstance(decoded, dict):
        raise ValueError(f"Expected a JSON object, got {type(decoded).__name__}")

    return decoded


def load_quantity_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a JSON or CSV quantity source from disk"""

    path = Path(path)
    if path.suffix.lower() == '.csv':
        return read_quantity_csv(path)

    logger.info(f"Loading quantities from {path}")
    return parse_quantity_json(path.read_text(encoding='utf-8'))


def _find_col(df: pd.DataFrame, keywords: Iterable[str]) -> Optional[str]:
    for c in df.columns:
        lc = str(c).lower()
        if any(k in lc for k in keywords):
            return c
    return None


def read_quantity_csv(source) -> Dict[str, Any]:
    """
    Read a two-column table (material, kg) into a key -> quantity mapping.

    Columns are located by keyword; when none match, the first column is
    taken as the material and the second as the quantity.
    """
    df = pd.read_csv(source)
    if df.empty:
        return {}

    name_col = _find_col(df, ["material", "waste", "type", "label", "name"])
    qty_col = _find_col(df, ["kg", "quantity", "weight", "mass"])

    if name_col is None or qty_col is None:
        if len(df.columns) < 2:
            raise ValueError("CSV needs a material column and a quantity column")
        name_col, qty_col = df.columns[0], df.columns[1]

    quantities = {}
    for name, qty in zip(df[name_col], df[qty_col]):
        if pd.isna(name):
            continue
        quantities[str(name)] = None if pd.isna(qty) else qty

    logger.info(f"Read {len(quantities)} rows from CSV")
    return quantities


def composition_frame(engine) -> pd.DataFrame:
    """Non-zero registry entries with their share of the total, in registry order"""

    rows = engine.composition()
    return pd.DataFrame(rows, columns=['Material', 'Quantity (kg)', 'Share (%)'])


def export_state_json(engine) -> str:
    """Export quantities and settings as a JSON document"""

    export_data = {
        'values': engine.values,
        'settings': {name: engine.get_setting(name) for name in SETTING_NAMES},
        'summary': {
            'total_waste_kg': engine.total_available_waste(),
            'bricks': engine.bricks_producible(),
            'volume_diverted_m3': engine.volume_diverted(),
            'area_reduced_m2': engine.area_reduced(),
            'percent_reduced': engine.percent_landfill_reduced(),
        },
    }

    return json.dumps(export_data, indent=2)
